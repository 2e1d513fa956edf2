"""
Unit tests for device registration, grace token and removal handlers.
"""

import uuid
from datetime import date, timedelta

import pytest

from core.domain.exceptions import (
    AuthorizationError,
    ConflictError,
    DeviceNotFoundError,
    OrganizationNotFoundError,
    TransientExternalServiceError,
    ValidationError,
)
from devices.application.commands.device_lifecycle import (
    IssueGraceTokenCommand,
    RemoveDeviceCommand,
)
from devices.application.commands.register_device import RegisterDeviceCommand
from devices.application.handlers.device_lifecycle_handlers import (
    IssueGraceTokenHandler,
    RemoveDeviceHandler,
)
from devices.application.handlers.register_device_handler import RegisterDeviceHandler
from devices.domain.device import add_years
from devices.domain.events import DeviceRegistered, DeviceRemoved, GraceTokenIssued


def register_command(actor, organization, serial="SN-NEW-1", **overrides):
    values = dict(
        actor_id=actor.id,
        organization_id=organization.id,
        serial_number=serial,
        name="Reception kiosk",
        location_label="Manchester, UK",
        expiry_date=date(2025, 6, 1),
    )
    values.update(overrides)
    return RegisterDeviceCommand(**values)


@pytest.mark.asyncio
class TestRegisterDeviceHandler:
    """Test cases for RegisterDeviceHandler."""

    async def test_geocodes_missing_coordinates(self, hierarchy, registry, orgs, geocoder, events):
        handler = RegisterDeviceHandler(registry, orgs, geocoder, event_bus=events)

        device = await handler.handle(register_command(hierarchy.direct_parent, hierarchy.direct_parent))

        assert geocoder.queries == ["Manchester, UK"]
        assert device.location.latitude == geocoder.coordinates.latitude
        assert registry.devices[device.id] == device
        assert len(events.of_type(DeviceRegistered)) == 1

    async def test_supplied_coordinates_skip_geocoding(self, hierarchy, registry, orgs, geocoder, events):
        handler = RegisterDeviceHandler(registry, orgs, geocoder, event_bus=events)

        device = await handler.handle(
            register_command(hierarchy.direct_parent, hierarchy.direct_parent, latitude=53.48, longitude=-2.24)
        )

        assert geocoder.queries == []
        assert device.location.longitude == -2.24

    async def test_parent_registers_for_child(self, hierarchy, registry, orgs, geocoder, events):
        handler = RegisterDeviceHandler(registry, orgs, geocoder, event_bus=events)

        device = await handler.handle(register_command(hierarchy.direct_parent, hierarchy.direct_child))

        assert device.org_id == hierarchy.direct_child.id

    async def test_unrelated_organization_is_not_found(self, hierarchy, registry, orgs, geocoder, events):
        handler = RegisterDeviceHandler(registry, orgs, geocoder, event_bus=events)

        with pytest.raises(OrganizationNotFoundError):
            await handler.handle(register_command(hierarchy.direct_parent, hierarchy.stranger))

    async def test_reseller_cannot_register(self, hierarchy, registry, orgs, geocoder, events):
        handler = RegisterDeviceHandler(registry, orgs, geocoder, event_bus=events)

        with pytest.raises(AuthorizationError):
            await handler.handle(register_command(hierarchy.reseller, hierarchy.ro_parent))

    async def test_duplicate_serial_rejected(self, hierarchy, registry, orgs, geocoder, events, add_device):
        existing = add_device(hierarchy.direct_parent)
        handler = RegisterDeviceHandler(registry, orgs, geocoder, event_bus=events)

        with pytest.raises(ValidationError) as exc_info:
            await handler.handle(
                register_command(hierarchy.direct_parent, hierarchy.direct_parent, serial=existing.serial_number)
            )
        assert exc_info.value.code == "DUPLICATE_SERIAL_NUMBER"

    async def test_geocoder_outage_is_retried_then_surfaced(self, hierarchy, registry, orgs, events, failing_geocoder):
        geocoder = failing_geocoder
        handler = RegisterDeviceHandler(registry, orgs, geocoder, event_bus=events)

        with pytest.raises(TransientExternalServiceError):
            await handler.handle(register_command(hierarchy.direct_parent, hierarchy.direct_parent))

        assert len(geocoder.queries) == 3
        assert registry.devices == {}


@pytest.mark.asyncio
class TestIssueGraceTokenHandler:
    """Test cases for IssueGraceTokenHandler."""

    async def test_expired_device_gets_token(self, hierarchy, registry, orgs, events, clock, add_device, today):
        device = add_device(hierarchy.direct_parent, days=-3)
        handler = IssueGraceTokenHandler(registry, orgs, event_bus=events, clock=clock)

        updated = await handler.handle(IssueGraceTokenCommand(hierarchy.direct_parent.id, device.id))

        assert updated.grace_token_expiry == today + timedelta(days=7)
        assert updated.expiry_date == device.expiry_date
        assert registry.devices[device.id].grace_token_expiry == updated.grace_token_expiry
        assert len(events.of_type(GraceTokenIssued)) == 1

    async def test_parent_issues_for_child_device(self, hierarchy, registry, orgs, events, clock, add_device):
        device = add_device(hierarchy.direct_child, days=-3)
        handler = IssueGraceTokenHandler(registry, orgs, event_bus=events, clock=clock)

        updated = await handler.handle(IssueGraceTokenCommand(hierarchy.direct_parent.id, device.id))

        assert updated.grace_token_expiry is not None

    async def test_active_device_rejected(self, hierarchy, registry, orgs, events, clock, add_device):
        device = add_device(hierarchy.direct_parent, days=100)
        handler = IssueGraceTokenHandler(registry, orgs, event_bus=events, clock=clock)

        with pytest.raises(ValidationError) as exc_info:
            await handler.handle(IssueGraceTokenCommand(hierarchy.direct_parent.id, device.id))
        assert exc_info.value.code == "DEVICE_NOT_EXPIRED"
        assert events.events == []

    async def test_active_token_rejects_second_issue(self, hierarchy, registry, orgs, events, clock, add_device):
        device = add_device(hierarchy.direct_parent, days=-3, grace_days=2)
        handler = IssueGraceTokenHandler(registry, orgs, event_bus=events, clock=clock)

        with pytest.raises(ValidationError) as exc_info:
            await handler.handle(IssueGraceTokenCommand(hierarchy.direct_parent.id, device.id))
        assert exc_info.value.code == "GRACE_TOKEN_ACTIVE"

    async def test_lapsed_token_can_be_reissued(self, hierarchy, registry, orgs, events, clock, add_device, today):
        device = add_device(hierarchy.direct_parent, days=-10, grace_days=0)
        handler = IssueGraceTokenHandler(registry, orgs, event_bus=events, clock=clock)

        updated = await handler.handle(IssueGraceTokenCommand(hierarchy.direct_parent.id, device.id))

        assert updated.grace_token_expiry == today + timedelta(days=7)

    async def test_child_cannot_issue(self, hierarchy, registry, orgs, events, clock, add_device):
        device = add_device(hierarchy.direct_child, days=-3)
        handler = IssueGraceTokenHandler(registry, orgs, event_bus=events, clock=clock)

        with pytest.raises(AuthorizationError):
            await handler.handle(IssueGraceTokenCommand(hierarchy.direct_child.id, device.id))

    async def test_foreign_device_not_found(self, hierarchy, registry, orgs, events, clock, add_device):
        device = add_device(hierarchy.stranger, days=-3)
        handler = IssueGraceTokenHandler(registry, orgs, event_bus=events, clock=clock)

        with pytest.raises(DeviceNotFoundError):
            await handler.handle(IssueGraceTokenCommand(hierarchy.direct_parent.id, device.id))

    async def test_renewal_between_read_and_write_is_kept(
        self, hierarchy, registry, orgs, events, clock, add_device, monkeypatch
    ):
        device = add_device(hierarchy.direct_parent, days=-3)
        save = registry.save

        async def renewed_first(updated):
            registry.extend_now([device.id], 1, [hierarchy.direct_parent.id])
            return await save(updated)

        monkeypatch.setattr(registry, "save", renewed_first)
        handler = IssueGraceTokenHandler(registry, orgs, event_bus=events, clock=clock)

        with pytest.raises(ConflictError):
            await handler.handle(IssueGraceTokenCommand(hierarchy.direct_parent.id, device.id))

        stored = registry.devices[device.id]
        assert stored.expiry_date == add_years(device.expiry_date, 1)
        assert stored.grace_token_expiry is None
        assert events.events == []


@pytest.mark.asyncio
class TestRemoveDeviceHandler:
    """Test cases for RemoveDeviceHandler."""

    async def test_expired_device_removed(self, hierarchy, registry, orgs, events, clock, add_device):
        device = add_device(hierarchy.direct_child, days=-1)
        handler = RemoveDeviceHandler(registry, orgs, event_bus=events, clock=clock)

        await handler.handle(RemoveDeviceCommand(hierarchy.direct_child.id, device.id))

        assert device.id not in registry.devices
        removed = events.of_type(DeviceRemoved)
        assert removed[0].status == "expired"

    async def test_suspended_device_removed(self, hierarchy, registry, orgs, events, clock, add_device):
        device = add_device(hierarchy.direct_parent, days=300, suspended=True)
        handler = RemoveDeviceHandler(registry, orgs, event_bus=events, clock=clock)

        await handler.handle(RemoveDeviceCommand(hierarchy.direct_parent.id, device.id))

        assert device.id not in registry.devices

    @pytest.mark.parametrize("days", [5, 300])
    async def test_live_device_kept(self, hierarchy, registry, orgs, events, clock, add_device, days):
        device = add_device(hierarchy.direct_parent, days=days)
        handler = RemoveDeviceHandler(registry, orgs, event_bus=events, clock=clock)

        with pytest.raises(ValidationError) as exc_info:
            await handler.handle(RemoveDeviceCommand(hierarchy.direct_parent.id, device.id))
        assert exc_info.value.code == "DEVICE_NOT_REMOVABLE"
        assert device.id in registry.devices

    async def test_reseller_cannot_remove(self, hierarchy, registry, orgs, events, clock, add_device):
        device = add_device(hierarchy.ro_parent, days=-1)
        handler = RemoveDeviceHandler(registry, orgs, event_bus=events, clock=clock)

        with pytest.raises(AuthorizationError):
            await handler.handle(RemoveDeviceCommand(hierarchy.reseller.id, device.id))

    async def test_missing_device(self, hierarchy, registry, orgs, events, clock):
        handler = RemoveDeviceHandler(registry, orgs, event_bus=events, clock=clock)

        with pytest.raises(DeviceNotFoundError):
            await handler.handle(RemoveDeviceCommand(hierarchy.direct_parent.id, uuid.uuid4()))
