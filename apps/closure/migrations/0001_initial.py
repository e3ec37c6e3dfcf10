from decimal import Decimal
import django.core.validators
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('finance', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='AccountPeriod',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('month', models.PositiveSmallIntegerField(help_text='Month number (1-12)', validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(12)], verbose_name='Month')),
                ('year', models.PositiveSmallIntegerField(verbose_name='Year')),
                ('is_open', models.BooleanField(default=False, help_text='Only one period per account can be open for posting.', verbose_name='Is Open')),
                ('opened_at', models.DateTimeField(blank=True, null=True, verbose_name='Opened At')),
                ('closed_at', models.DateTimeField(blank=True, null=True, verbose_name='Closed At')),
                ('account', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='periods', to='finance.account', verbose_name='Account')),
            ],
            options={
                'verbose_name': 'Account Period',
                'verbose_name_plural': 'Account Periods',
                'ordering': ['account', 'year', 'month'],
            },
        ),
        migrations.CreateModel(
            name='MonthlyLedgerBalance',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('month', models.PositiveSmallIntegerField(validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(12)], verbose_name='Month')),
                ('year', models.PositiveSmallIntegerField(verbose_name='Year')),
                ('opening_balance', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=15, verbose_name='Opening Balance')),
                ('receipts', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=15, verbose_name='Receipts')),
                ('payments', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=15, verbose_name='Payments')),
                ('closing_balance', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=15, verbose_name='Closing Balance')),
                ('cash_in_hand', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=15, verbose_name='Cash in Hand')),
                ('cash_in_bank', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=15, verbose_name='Cash in Bank')),
                ('last_updated', models.DateTimeField(auto_now=True, verbose_name='Last Updated')),
                ('account', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='monthly_balances', to='finance.account', verbose_name='Account')),
                ('ledger_head', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='monthly_balances', to='finance.ledgerhead', verbose_name='Ledger Head')),
                ('period', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='balances', to='closure.accountperiod', verbose_name='Period')),
            ],
            options={
                'verbose_name': 'Monthly Ledger Balance',
                'verbose_name_plural': 'Monthly Ledger Balances',
                'ordering': ['account', 'year', 'month', 'ledger_head'],
            },
        ),
        migrations.AddConstraint(
            model_name='accountperiod',
            constraint=models.UniqueConstraint(fields=('account', 'month', 'year'), name='unique_period_per_account'),
        ),
        migrations.AddConstraint(
            model_name='accountperiod',
            constraint=models.UniqueConstraint(condition=models.Q(('is_open', True)), fields=('account',), name='one_open_period_per_account'),
        ),
        migrations.AddIndex(
            model_name='monthlyledgerbalance',
            index=models.Index(fields=['account', 'year', 'month'], name='mlb_account_period_idx'),
        ),
        migrations.AddIndex(
            model_name='monthlyledgerbalance',
            index=models.Index(fields=['ledger_head', 'year', 'month'], name='mlb_head_period_idx'),
        ),
        migrations.AddConstraint(
            model_name='monthlyledgerbalance',
            constraint=models.UniqueConstraint(fields=('account', 'ledger_head', 'month', 'year'), name='unique_monthly_balance'),
        ),
    ]
