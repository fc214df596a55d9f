from decimal import Decimal
from django.conf import settings
import django.core.validators
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('accounts', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Vendor',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('business_name', models.CharField(max_length=200)),
                ('description', models.TextField(blank=True)),
                ('address', models.CharField(blank=True, max_length=300)),
                ('city', models.CharField(max_length=100)),
                ('state', models.CharField(max_length=100)),
                ('pincode', models.CharField(max_length=10)),
                ('is_approved', models.BooleanField(default=False)),
                ('total_redemptions', models.PositiveIntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('user', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='vendor_profile', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'vendors',
                'ordering': ['business_name'],
            },
        ),
        migrations.CreateModel(
            name='Deal',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('title', models.CharField(max_length=200)),
                ('description', models.TextField()),
                ('category', models.CharField(choices=[('fashion', 'Fashion'), ('electronics', 'Electronics'), ('travel', 'Travel'), ('food', 'Food'), ('home', 'Home'), ('fitness', 'Fitness'), ('services', 'Services'), ('other', 'Other')], default='other', max_length=20)),
                ('deal_type', models.CharField(choices=[('offline', 'In-store'), ('online', 'Online')], default='offline', max_length=10)),
                ('affiliate_link', models.URLField(blank=True, max_length=500)),
                ('discount_percentage', models.PositiveSmallIntegerField(validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(100)])),
                ('original_price', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True, validators=[django.core.validators.MinValueValidator(Decimal('0.01'))])),
                ('discounted_price', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ('valid_from', models.DateTimeField(default=django.utils.timezone.now)),
                ('valid_until', models.DateTimeField()),
                ('max_redemptions', models.PositiveIntegerField(blank=True, null=True)),
                ('current_redemptions', models.PositiveIntegerField(default=0)),
                ('required_membership', models.CharField(choices=[('basic', 'Basic'), ('premium', 'Premium'), ('ultimate', 'Ultimate')], default='basic', max_length=20)),
                ('is_active', models.BooleanField(default=True)),
                ('is_approved', models.BooleanField(default=False)),
                ('is_rejected', models.BooleanField(default=False)),
                ('rejection_reason', models.TextField(blank=True)),
                ('verification_pin', models.CharField(blank=True, max_length=255)),
                ('pin_salt', models.CharField(blank=True, max_length=64)),
                ('pin_created_at', models.DateTimeField(blank=True, null=True)),
                ('pin_expires_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('approved_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='approved_deals', to=settings.AUTH_USER_MODEL)),
                ('vendor', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='deals', to='deals.vendor')),
            ],
            options={
                'db_table': 'deals',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['vendor', 'created_at'], name='deals_vendor_idx'),
                    models.Index(fields=['is_active', 'is_approved', 'valid_until'], name='deals_available_idx'),
                    models.Index(fields=['category'], name='deals_category_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('max_redemptions__isnull', True), ('current_redemptions__lte', models.F('max_redemptions')), _connector='OR'), name='deals_redemptions_within_max'),
                ],
            },
        ),
        migrations.CreateModel(
            name='PinAttempt',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('ip_address', models.GenericIPAddressField(blank=True, null=True)),
                ('user_agent', models.CharField(blank=True, max_length=255)),
                ('success', models.BooleanField()),
                ('attempted_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('deal', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='pin_attempts', to='deals.deal')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='pin_attempts', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'pin_attempts',
                'ordering': ['attempted_at'],
                'indexes': [
                    models.Index(fields=['deal', 'user', 'attempted_at'], name='pin_attempts_deal_user_idx'),
                    models.Index(fields=['deal', 'ip_address', 'attempted_at'], name='pin_attempts_deal_ip_idx'),
                ],
            },
        ),
    ]
