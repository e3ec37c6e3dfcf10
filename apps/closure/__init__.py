"""
-------------------------------------------------------------------------
System: TrustLedger (Bookkeeping & Monthly Closure System)
Client: Trusts, Societies and Small Organizations
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Closure app initialization. Handles accounting periods,
             monthly ledger snapshots and balance propagation.
-------------------------------------------------------------------------
"""
