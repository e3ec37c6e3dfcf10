from decimal import Decimal
from django.conf import settings
import django.core.validators
from django.db import migrations, models
import django.db.models.deletion
import uuid


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Account',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True, help_text='Timestamp when this record was created.', verbose_name='Created At')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when this record was last modified.', verbose_name='Updated At')),
                ('is_active', models.BooleanField(default=True, help_text='Whether this record is active in the system.', verbose_name='Is Active')),
                ('name', models.CharField(max_length=150, unique=True, verbose_name='Account Name')),
                ('opening_balance', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=15, verbose_name='Opening Balance')),
                ('closing_balance', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=15, verbose_name='Closing Balance')),
                ('cash_balance', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=15, verbose_name='Cash Balance')),
                ('bank_balance', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=15, verbose_name='Bank Balance')),
                ('last_closed_date', models.DateField(blank=True, help_text='Last day of the most recently closed accounting period.', null=True, verbose_name='Last Closed Date')),
            ],
            options={
                'verbose_name': 'Account',
                'verbose_name_plural': 'Accounts',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Booklet',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True, help_text='Timestamp when this record was created.', verbose_name='Created At')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when this record was last modified.', verbose_name='Updated At')),
                ('is_active', models.BooleanField(default=True, help_text='Whether this record is active in the system.', verbose_name='Is Active')),
                ('booklet_no', models.CharField(max_length=30, unique=True, verbose_name='Booklet Number')),
                ('start_no', models.PositiveIntegerField(verbose_name='First Receipt No')),
                ('end_no', models.PositiveIntegerField(verbose_name='Last Receipt No')),
                ('pages_left', models.JSONField(blank=True, default=list, help_text='Receipt numbers that have not been used yet.', verbose_name='Pages Left')),
            ],
            options={
                'verbose_name': 'Booklet',
                'verbose_name_plural': 'Booklets',
                'ordering': ['booklet_no'],
            },
        ),
        migrations.CreateModel(
            name='Donor',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True, help_text='Timestamp when this record was created.', verbose_name='Created At')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when this record was last modified.', verbose_name='Updated At')),
                ('name', models.CharField(max_length=150, verbose_name='Donor Name')),
                ('phone', models.CharField(blank=True, max_length=30, verbose_name='Phone')),
                ('email', models.EmailField(blank=True, max_length=254, verbose_name='Email')),
                ('address', models.TextField(blank=True, verbose_name='Address')),
            ],
            options={
                'verbose_name': 'Donor',
                'verbose_name_plural': 'Donors',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='LedgerHead',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True, help_text='Timestamp when this record was created.', verbose_name='Created At')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when this record was last modified.', verbose_name='Updated At')),
                ('is_active', models.BooleanField(default=True, help_text='Whether this record is active in the system.', verbose_name='Is Active')),
                ('name', models.CharField(max_length=150, verbose_name='Ledger Head Name')),
                ('head_type', models.CharField(choices=[('debit', 'Debit'), ('credit', 'Credit')], default='credit', max_length=10, verbose_name='Head Type')),
                ('current_balance', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=15, verbose_name='Current Balance')),
                ('cash_balance', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=15, verbose_name='Cash Balance')),
                ('bank_balance', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=15, verbose_name='Bank Balance')),
                ('account', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='ledger_heads', to='finance.account', verbose_name='Account')),
            ],
            options={
                'verbose_name': 'Ledger Head',
                'verbose_name_plural': 'Ledger Heads',
                'ordering': ['account', 'id'],
            },
        ),
        migrations.CreateModel(
            name='Transaction',
            fields=[
                ('created_at', models.DateTimeField(auto_now_add=True, help_text='Timestamp when this record was created.', verbose_name='Created At')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when this record was last modified.', verbose_name='Updated At')),
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('receipt_no', models.PositiveIntegerField(blank=True, null=True, verbose_name='Receipt Number')),
                ('amount', models.DecimalField(decimal_places=2, max_digits=15, validators=[django.core.validators.MinValueValidator(Decimal('0.01'))], verbose_name='Amount')),
                ('tx_type', models.CharField(choices=[('credit', 'Credit (Money Received)'), ('debit', 'Debit (Money Paid)')], max_length=10, verbose_name='Transaction Type')),
                ('cash_type', models.CharField(choices=[('cash', 'Cash'), ('bank', 'Bank Transfer'), ('upi', 'UPI'), ('card', 'Card'), ('netbank', 'Net Banking'), ('cheque', 'Cheque'), ('multiple', 'Cash and Bank')], default='cash', max_length=10, verbose_name='Payment Mode')),
                ('cash_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=15, verbose_name='Cash Amount')),
                ('bank_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=15, verbose_name='Bank Amount')),
                ('tx_date', models.DateField(verbose_name='Transaction Date')),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('completed', 'Completed'), ('cancelled', 'Cancelled')], default='completed', max_length=10, verbose_name='Status')),
                ('description', models.TextField(blank=True, verbose_name='Description')),
                ('account', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='transactions', to='finance.account', verbose_name='Account')),
                ('booklet', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='transactions', to='finance.booklet', verbose_name='Booklet')),
                ('created_by', models.ForeignKey(blank=True, help_text='User who created this record.', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='%(class)s_created', to=settings.AUTH_USER_MODEL, verbose_name='Created By')),
                ('donor', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='transactions', to='finance.donor', verbose_name='Donor')),
                ('ledger_head', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='transactions', to='finance.ledgerhead', verbose_name='Primary Ledger Head')),
            ],
            options={
                'verbose_name': 'Transaction',
                'verbose_name_plural': 'Transactions',
                'ordering': ['-tx_date', '-created_at'],
            },
        ),
        migrations.CreateModel(
            name='TransactionItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('amount', models.DecimalField(decimal_places=2, max_digits=15, validators=[django.core.validators.MinValueValidator(Decimal('0.01'))], verbose_name='Amount')),
                ('side', models.CharField(choices=[('+', 'Increase'), ('-', 'Decrease')], max_length=1, verbose_name='Side')),
                ('ledger_head', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='transaction_items', to='finance.ledgerhead', verbose_name='Ledger Head')),
                ('transaction', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='finance.transaction', verbose_name='Transaction')),
            ],
            options={
                'verbose_name': 'Transaction Item',
                'verbose_name_plural': 'Transaction Items',
                'ordering': ['transaction', 'id'],
            },
        ),
        migrations.CreateModel(
            name='Cheque',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True, help_text='Timestamp when this record was created.', verbose_name='Created At')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when this record was last modified.', verbose_name='Updated At')),
                ('cheque_number', models.CharField(max_length=30, verbose_name='Cheque Number')),
                ('bank_name', models.CharField(max_length=100, verbose_name='Bank Name')),
                ('issue_date', models.DateField(verbose_name='Issue Date')),
                ('due_date', models.DateField(verbose_name='Due Date')),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('cleared', 'Cleared'), ('cancelled', 'Cancelled')], default='pending', max_length=10, verbose_name='Status')),
                ('clearing_date', models.DateField(blank=True, help_text='Set only when the cheque has cleared.', null=True, verbose_name='Clearing Date')),
                ('description', models.TextField(blank=True, verbose_name='Description')),
                ('account', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='cheques', to='finance.account', verbose_name='Account')),
                ('ledger_head', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='cheques', to='finance.ledgerhead', verbose_name='Ledger Head')),
                ('transaction', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='cheque', to='finance.transaction', verbose_name='Transaction')),
            ],
            options={
                'verbose_name': 'Cheque',
                'verbose_name_plural': 'Cheques',
                'ordering': ['-issue_date', '-id'],
            },
        ),
        migrations.AddConstraint(
            model_name='ledgerhead',
            constraint=models.UniqueConstraint(fields=('account', 'name'), name='unique_ledger_head_per_account'),
        ),
        migrations.AddIndex(
            model_name='transaction',
            index=models.Index(fields=['account', 'tx_date'], name='tx_account_date_idx'),
        ),
        migrations.AddIndex(
            model_name='transaction',
            index=models.Index(fields=['ledger_head', 'tx_date'], name='tx_head_date_idx'),
        ),
        migrations.AddIndex(
            model_name='transaction',
            index=models.Index(fields=['status'], name='tx_status_idx'),
        ),
        migrations.AddConstraint(
            model_name='transaction',
            constraint=models.UniqueConstraint(fields=('booklet', 'receipt_no'), name='unique_receipt_per_booklet'),
        ),
        migrations.AddIndex(
            model_name='transactionitem',
            index=models.Index(fields=['ledger_head', 'side'], name='txitem_head_side_idx'),
        ),
        migrations.AddIndex(
            model_name='cheque',
            index=models.Index(fields=['account', 'status'], name='cheque_account_status_idx'),
        ),
        migrations.AddIndex(
            model_name='cheque',
            index=models.Index(fields=['due_date'], name='cheque_due_date_idx'),
        ),
        migrations.AddConstraint(
            model_name='cheque',
            constraint=models.UniqueConstraint(fields=('account', 'cheque_number'), name='unique_cheque_number_per_account'),
        ),
    ]
