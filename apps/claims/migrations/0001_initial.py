from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('deals', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='DealClaim',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('claim_code', models.CharField(max_length=12, unique=True)),
                ('code_expires_at', models.DateTimeField()),
                ('status', models.CharField(choices=[('claimed', 'Claimed'), ('verified', 'Verified'), ('used', 'Used'), ('expired', 'Expired')], default='claimed', max_length=10)),
                ('vendor_verified', models.BooleanField(default=False)),
                ('bill_amount', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ('actual_savings', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ('claimed_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('verified_at', models.DateTimeField(blank=True, null=True)),
                ('used_at', models.DateTimeField(blank=True, null=True)),
                ('deal', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='claims', to='deals.deal')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='deal_claims', to=settings.AUTH_USER_MODEL)),
                ('verified_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='verified_claims', to='deals.vendor')),
            ],
            options={
                'db_table': 'deal_claims',
                'ordering': ['-claimed_at'],
                'indexes': [
                    models.Index(fields=['user', 'claimed_at'], name='deal_claims_user_idx'),
                    models.Index(fields=['deal', 'status'], name='deal_claims_deal_status_idx'),
                    models.Index(fields=['status', 'code_expires_at'], name='deal_claims_expiry_idx'),
                ],
            },
        ),
    ]
