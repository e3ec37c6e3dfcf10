"""
-------------------------------------------------------------------------
System: TrustLedger (Bookkeeping & Monthly Closure System)
Client: Trusts, Societies and Small Organizations
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Finance app initialization. Handles accounts, ledger heads,
             double-entry transactions and cheques.
-------------------------------------------------------------------------
"""
