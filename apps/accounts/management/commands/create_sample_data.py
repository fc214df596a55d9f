"""
Management command to create sample data for testing the API.

Usage:
    python manage.py create_sample_data

This creates:
- 4 users (admin, priya, rahul, meera)
- 2 approved vendors (Rahul's store in Mumbai, Meera's in Pune)
- 6 approved deals, offline ones with a verification PIN
"""

from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone
from decimal import Decimal
from datetime import timedelta

from apps.accounts.models import User, UserRole, MembershipPlan
from apps.claims.models import DealClaim
from apps.deals.models import Deal, DealCategory, DealType, PinAttempt, Vendor
from apps.deals.services import register_vendor, approve_vendor, create_deal


class Command(BaseCommand):
    help = 'Create sample data for testing the API'

    def add_arguments(self, parser):
        parser.add_argument(
            '--clear',
            action='store_true',
            help='Clear existing data before creating new sample data',
        )

    @transaction.atomic
    def handle(self, *args, **options):
        if options['clear']:
            self.stdout.write('Clearing existing data...')
            self.clear_data()

        self.stdout.write('Creating sample data...')

        # Create users
        users = self.create_users()

        # Create vendors
        vendors = self.create_vendors(users)

        # Create deals
        pins = self.create_deals(users['admin'], vendors)

        self.stdout.write(self.style.SUCCESS('Sample data created successfully!'))
        self.stdout.write('')
        self.stdout.write('Test accounts:')
        self.stdout.write('  admin@example.com / admin123 (superuser)')
        self.stdout.write('  priya@example.com / password123 (customer, premium)')
        self.stdout.write('  rahul@example.com / password123 (vendor)')
        self.stdout.write('  meera@example.com / password123 (vendor)')
        if pins:
            self.stdout.write('')
            self.stdout.write('Deal PINs:')
            for title, pin in pins:
                self.stdout.write(f'  {title}: {pin}')

    def clear_data(self):
        """Clear all data from the database."""
        DealClaim.objects.all().delete()
        PinAttempt.objects.all().delete()
        Deal.objects.all().delete()
        Vendor.objects.all().delete()
        User.objects.filter(is_superuser=False).delete()
        User.objects.filter(email='admin@example.com').delete()

    def create_users(self):
        """Create test users."""
        self.stdout.write('  Creating users...')

        admin, _ = User.objects.get_or_create(
            email='admin@example.com',
            defaults={
                'display_name': 'Admin User',
                'role': UserRole.ADMIN,
                'is_staff': True,
                'is_superuser': True,
            }
        )
        admin.set_password('admin123')
        admin.save()

        priya, _ = User.objects.get_or_create(
            email='priya@example.com',
            defaults={
                'display_name': 'Priya Sharma',
                'membership_plan': MembershipPlan.PREMIUM,
            }
        )
        priya.set_password('password123')
        priya.save()

        rahul, _ = User.objects.get_or_create(
            email='rahul@example.com',
            defaults={'display_name': 'Rahul Mehta'}
        )
        rahul.set_password('password123')
        rahul.save()

        meera, _ = User.objects.get_or_create(
            email='meera@example.com',
            defaults={'display_name': 'Meera Iyer'}
        )
        meera.set_password('password123')
        meera.save()

        return {
            'admin': admin,
            'priya': priya,
            'rahul': rahul,
            'meera': meera,
        }

    def create_vendors(self, users):
        """Create approved vendor profiles."""
        self.stdout.write('  Creating vendors...')

        vendor_data = [
            ('rahul', {
                'business_name': 'Mehta Electronics',
                'city': 'Mumbai',
                'state': 'Maharashtra',
                'pincode': '400050',
                'address': 'Linking Road, Bandra West',
            }),
            ('meera', {
                'business_name': 'Iyer Fashion House',
                'city': 'Pune',
                'state': 'Maharashtra',
                'pincode': '411001',
                'address': 'MG Road, Camp',
            }),
        ]

        vendors = {}
        for username, data in vendor_data:
            user = users[username]
            vendor = Vendor.objects.filter(user=user).first()
            if vendor is None:
                vendor = register_vendor(user=user, **data)
            vendors[username] = approve_vendor(vendor_id=vendor.id)

        return vendors

    def create_deals(self, admin, vendors):
        """Create approved deals. Returns (title, pin) pairs for new offline deals."""
        self.stdout.write('  Creating deals...')

        valid_until = timezone.now() + timedelta(days=30)
        deals_data = [
            {
                'vendor': vendors['rahul'],
                'title': '20% off Bluetooth Headphones',
                'description': 'Flat 20% off on all over-ear Bluetooth headphones.',
                'category': DealCategory.ELECTRONICS,
                'discount_percentage': 20,
                'original_price': Decimal('4999.00'),
                'max_redemptions': 50,
                'verification_pin': '4829',
            },
            {
                'vendor': vendors['rahul'],
                'title': 'Smartwatch Festival Offer',
                'description': 'Save on fitness smartwatches this festive season.',
                'category': DealCategory.ELECTRONICS,
                'discount_percentage': 15,
                'original_price': Decimal('8999.00'),
                'required_membership': MembershipPlan.PREMIUM,
                'verification_pin': '7305',
            },
            {
                'vendor': vendors['rahul'],
                'title': 'Online Exclusive: Power Banks',
                'description': 'Extra 10% off power banks on our web store.',
                'category': DealCategory.ELECTRONICS,
                'deal_type': DealType.ONLINE,
                'affiliate_link': 'https://shop.example.com/power-banks',
                'discount_percentage': 10,
                'original_price': Decimal('1499.00'),
            },
            {
                'vendor': vendors['meera'],
                'title': 'Silk Sarees Sale',
                'description': '30% off handwoven silk sarees.',
                'category': DealCategory.FASHION,
                'discount_percentage': 30,
                'original_price': Decimal('12000.00'),
                'max_redemptions': 20,
                'verification_pin': '6152',
            },
            {
                'vendor': vendors['meera'],
                'title': 'Kurta Combo Deal',
                'description': 'Buy any two kurtas and get 25% off the bill.',
                'category': DealCategory.FASHION,
                'discount_percentage': 25,
                'verification_pin': '9071',
            },
            {
                'vendor': vendors['meera'],
                'title': 'Ultimate Members Styling Session',
                'description': 'Half price personal styling session for ultimate members.',
                'category': DealCategory.SERVICES,
                'discount_percentage': 50,
                'original_price': Decimal('3000.00'),
                'required_membership': MembershipPlan.ULTIMATE,
                'verification_pin': '2618',
            },
        ]

        pins = []
        for data in deals_data:
            if Deal.objects.filter(vendor=data['vendor'], title=data['title']).exists():
                continue

            deal, pin = create_deal(valid_until=valid_until, **data)
            deal.is_approved = True
            deal.approved_by = admin
            deal.save(update_fields=['is_approved', 'approved_by', 'updated_at'])

            if pin:
                pins.append((deal.title, pin))

        return pins
