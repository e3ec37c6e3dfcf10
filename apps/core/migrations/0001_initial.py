from django.conf import settings
import django.core.serializers.json
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='AuditLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('entity_type', models.CharField(max_length=50, verbose_name='Entity Type')),
                ('entity_id', models.CharField(max_length=64, verbose_name='Entity ID')),
                ('action', models.CharField(choices=[('TRANSACTION_POSTED', 'Transaction Posted'), ('TRANSACTION_VOIDED', 'Transaction Voided'), ('CHEQUE_CLEARED', 'Cheque Cleared'), ('CHEQUE_CANCELLED', 'Cheque Cancelled'), ('PERIOD_OPENED', 'Period Opened'), ('PERIOD_CLOSED', 'Period Closed'), ('PERIOD_REOPENED', 'Period Reopened'), ('PERIOD_RECALCULATED', 'Period Recalculated'), ('BALANCE_RECONCILED', 'Balance Reconciled')], max_length=30, verbose_name='Action')),
                ('details', models.JSONField(blank=True, default=dict, encoder=django.core.serializers.json.DjangoJSONEncoder, verbose_name='Details')),
                ('timestamp', models.DateTimeField(auto_now_add=True, verbose_name='Timestamp')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='ledger_audit_logs', to=settings.AUTH_USER_MODEL, verbose_name='User')),
            ],
            options={
                'verbose_name': 'Audit Log',
                'verbose_name_plural': 'Audit Logs',
                'ordering': ['-timestamp', '-id'],
                'indexes': [
                    models.Index(fields=['entity_type', 'entity_id'], name='audit_entity_idx'),
                    models.Index(fields=['action', 'timestamp'], name='audit_action_ts_idx'),
                ],
            },
        ),
    ]
