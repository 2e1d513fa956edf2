"""
Unit tests for the Device entity.
"""

import uuid
from dataclasses import replace
from datetime import date

import pytest

from core.domain.value_objects import Location
from devices.domain.device import Device, add_years


def make_device(expiry=date(2024, 1, 1)):
    return Device.create(
        org_id=uuid.uuid4(),
        serial_number="  SN-0001 ",
        name="Lobby kiosk",
        location=Location("Leeds, UK", 53.8, -1.55),
        expiry_date=expiry,
    )


class TestDevice:
    """Test cases for Device entity."""

    def test_create(self):
        device = make_device()

        assert device.serial_number == "SN-0001"
        assert device.grace_token_expiry is None
        assert device.suspended is False
        assert device.version == 1

    def test_name_defaults_to_serial(self):
        device = Device.create(
            org_id=uuid.uuid4(),
            serial_number="SN-0002",
            name="",
            location=Location("Leeds"),
            expiry_date=date(2024, 1, 1),
        )
        assert device.name == "SN-0002"

    def test_empty_serial_rejected(self):
        with pytest.raises(ValueError):
            Device.create(
                org_id=uuid.uuid4(),
                serial_number=" ",
                name="x",
                location=Location("Leeds"),
                expiry_date=date(2024, 1, 1),
            )

    def test_grace_token_must_outlive_expiry(self):
        device = make_device()
        with pytest.raises(ValueError):
            replace(device, grace_token_expiry=date(2023, 12, 31))

    def test_with_grace_token(self):
        device = make_device()
        graced = device.with_grace_token(date(2024, 1, 3), 7)

        assert graced.grace_token_expiry == date(2024, 1, 10)
        assert graced.expiry_date == device.expiry_date
        assert graced.version == device.version + 1

    def test_extension_counts_from_previous_expiry(self):
        device = make_device(expiry=date(2025, 3, 1))
        renewed = device.extended_by(2)

        assert renewed.expiry_date == date(2027, 3, 1)
        assert renewed.version == device.version + 1

    def test_extension_clears_grace_token(self):
        graced = make_device().with_grace_token(date(2024, 1, 3), 7)
        assert graced.extended_by(1).grace_token_expiry is None

    def test_extension_needs_a_year(self):
        with pytest.raises(ValueError):
            make_device().extended_by(0)


@pytest.mark.parametrize(
    "start, years, expected",
    [
        (date(2024, 1, 1), 1, date(2025, 1, 1)),
        (date(2024, 2, 29), 1, date(2025, 2, 28)),
        (date(2024, 2, 29), 4, date(2028, 2, 29)),
    ],
)
def test_add_years(start, years, expected):
    assert add_years(start, years) == expected


def test_location_needs_both_coordinates():
    with pytest.raises(ValueError):
        Location("Leeds", 53.8, None)
