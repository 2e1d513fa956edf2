"""
Django management command to create a demo organization hierarchy.

Creates:
- A superuser (admin/admin), unless skipped
- A reseller with a reseller-billed parent and one child
- A directly billed parent with one child
- Devices in every status for each fleet
- One API key per organization
"""

import logging
from datetime import date, timedelta
from decimal import Decimal

from asgiref.sync import async_to_sync
from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand

from core.domain.value_objects import BillingMode, Location
from devices.domain.device import Device
from devices.infrastructure.models import Device as DeviceModel
from devices.infrastructure.repositories.django_device_registry import DjangoDeviceRegistry
from organizations.domain.organization import (
    ChildOrganization,
    ParentOrganization,
    ResellerOrganization,
)
from organizations.infrastructure.models import Organization as OrganizationModel
from organizations.infrastructure.repositories.django_organization_repository import (
    DjangoOrganizationRepository,
)

logger = logging.getLogger(__name__)
User = get_user_model()

# (serial suffix, days until expiry, suspended)
DEVICE_PROFILES = [
    ("ACT", 200, False),
    ("SOON", 12, False),
    ("EXP", -5, False),
    ("SUSP", 90, True),
]


class Command(BaseCommand):
    """Command to seed a demo fleet."""

    help = "Create a demo reseller/parent/child hierarchy with devices and API keys"

    def add_arguments(self, parser):
        """Add command arguments."""
        parser.add_argument(
            "--skip-superuser",
            action="store_true",
            help="Skip creating superuser",
        )
        parser.add_argument(
            "--prefix",
            type=str,
            default="DEMO",
            help="Serial number prefix for created devices (default: DEMO)",
        )

    def handle(self, *args, **options):
        """Execute the command."""
        if not options["skip_superuser"]:
            self.create_superuser()

        # pylint: disable=no-member
        if OrganizationModel.objects.filter(name="Demo Reseller").exists():
            self.stdout.write(self.style.WARNING("Demo fleet already exists, nothing to do"))
            return

        organizations = async_to_sync(self.create_fleet)(options["prefix"])
        self.print_summary(organizations)

    def create_superuser(self):
        """Create a superuser if it doesn't exist."""
        if User.objects.filter(username="admin").exists():
            # pylint: disable=no-member
            self.stdout.write(self.style.WARNING("Superuser 'admin' already exists"))
            return
        User.objects.create_superuser(username="admin", email="admin@example.com", password="admin")
        # pylint: disable=no-member
        self.stdout.write(self.style.SUCCESS("Created superuser: admin / admin"))

    async def create_fleet(self, prefix: str):
        """Create the hierarchy and its devices."""
        org_repo = DjangoOrganizationRepository()
        registry = DjangoDeviceRegistry()

        reseller = await org_repo.save(
            ResellerOrganization.create("Demo Reseller", default_margin_percent=Decimal("20"))
        )
        managed = await org_repo.save(
            ParentOrganization.create(
                "Demo Managed Parent",
                billing_mode=BillingMode.RESELLER_ONLY,
                reseller_id=reseller.id,
            )
        )
        managed_child = await org_repo.save(
            ChildOrganization.create("Demo Managed Child", parent_id=managed.id)
        )
        direct = await org_repo.save(
            ParentOrganization.create("Demo Direct Parent", billing_mode=BillingMode.DIRECT)
        )
        direct_child = await org_repo.save(
            ChildOrganization.create("Demo Direct Child", parent_id=direct.id)
        )

        today = date.today()
        for index, owner in enumerate((managed, managed_child, direct, direct_child)):
            for suffix, days, suspended in DEVICE_PROFILES:
                device = Device.create(
                    org_id=owner.id,
                    serial_number=f"{prefix}-{index}-{suffix}",
                    name=f"{owner.name} {suffix.lower()}",
                    location=Location(label="London, UK", latitude=51.5072, longitude=-0.1276),
                    expiry_date=today + timedelta(days=days),
                )
                await registry.save(device)
                if suspended:
                    await self._suspend(device.id)

        return [reseller, managed, managed_child, direct, direct_child]

    @staticmethod
    async def _suspend(device_id):
        # Suspension is set externally; the domain never toggles it
        # pylint: disable=no-member
        await DeviceModel.objects.filter(id=device_id).aupdate(suspended=True)

    def print_summary(self, organizations):
        """Print the created organizations and their API keys."""
        # pylint: disable=no-member
        self.stdout.write(self.style.SUCCESS("\n" + "=" * 60))
        self.stdout.write(self.style.SUCCESS("Demo Fleet"))
        self.stdout.write(self.style.SUCCESS("=" * 60))
        for organization in organizations:
            model = OrganizationModel.objects.get(id=organization.id)
            api_key = model.generate_api_key()
            self.stdout.write(f"\n{organization.name} ({organization.type.value})")
            self.stdout.write(f"   ID: {organization.id}")
            self.stdout.write(f"   API key: {api_key._raw_key}")  # pylint: disable=protected-access
        self.stdout.write(
            self.style.WARNING("\nSave these API keys - they cannot be retrieved later!")
        )
        self.stdout.write("\nExample request:")
        self.stdout.write('   curl -H "X-API-Key: <key>" http://localhost:8000/api/v1/devices/')
        self.stdout.write(self.style.SUCCESS("\n" + "=" * 60 + "\n"))
