import unittest
from datetime import datetime, timezone
import sys
import os

# Add the functions directory to the Python path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from google.api_core.datetime_helpers import DatetimeWithNanoseconds

from models.entities import (
    OccupancyStatus,
    PaymentStatus,
    PropertyCategory,
    PropertyType,
    Tenant,
    TransactionCategory,
    TransactionType,
)
from services.converters import (
    property_converter,
    tenant_converter,
    to_datetime,
    transaction_converter,
    user_profile_converter,
)
from services.errors import DecodeError
from tests.constants import PROFILE, PROPERTIES, TENANTS, TRANSACTIONS, UID


class TestEntityConverter(unittest.TestCase):

    def test_tenant_from_wire(self):
        tenant = tenant_converter.from_wire("tenant-john", TENANTS["tenant-john"])

        self.assertEqual(tenant.id, "tenant-john")
        self.assertEqual(tenant.name, "John Doe")
        self.assertEqual(tenant.rent_amount, 1200)
        self.assertIs(tenant.payment_status, PaymentStatus.PENDING)
        self.assertEqual(tenant.due_date, datetime(2025, 3, 5, tzinfo=timezone.utc))
        self.assertEqual(tenant.net_terms, 5)
        self.assertIsNone(tenant.last_receipt_url)

    def test_tenant_round_trip(self):
        tenant = tenant_converter.from_wire("tenant-john", TENANTS["tenant-john"])
        self.assertEqual(tenant_converter.from_wire(tenant.id, tenant_converter.to_wire(tenant)), tenant)

    def test_to_wire_uses_camel_case_and_omits_unset_fields(self):
        tenant = Tenant(id="t1", name="A", rent_amount=10.0,
                        due_date=datetime(2025, 1, 1, tzinfo=timezone.utc))
        record = tenant_converter.to_wire(tenant)

        self.assertEqual(record, {
            "name": "A",
            "rentAmount": 10.0,
            "dueDate": datetime(2025, 1, 1, tzinfo=timezone.utc),
            "paymentStatus": "pending",
            "paymentMethod": "cash",
        })
        self.assertNotIn("id", record)

    def test_transaction_direction_is_stored_as_type(self):
        transaction = transaction_converter.from_wire("txn-plumber", TRANSACTIONS["txn-plumber"])

        self.assertIs(transaction.direction, TransactionType.EXPENSE)
        self.assertIs(transaction.category, TransactionCategory.MAINTENANCE)
        self.assertEqual(transaction_converter.to_wire(transaction)["type"], "expense")

    def test_to_wire_fields_keeps_none_to_clear(self):
        fields = tenant_converter.to_wire_fields({"payment_status": PaymentStatus.PAID, "notes": None})
        self.assertEqual(fields, {"paymentStatus": "paid", "notes": None})

    def test_to_wire_fields_rejects_unknown_attribute(self):
        with self.assertRaises(ValueError):
            tenant_converter.to_wire_fields({"shoe_size": 9})

    def test_missing_required_field_raises(self):
        record = dict(TENANTS["tenant-john"], dueDate=None)
        with self.assertRaises(DecodeError) as ctx:
            tenant_converter.from_wire("tenant-john", record)
        self.assertEqual(ctx.exception.key, "tenant-john")
        self.assertIn("dueDate", ctx.exception.reason)

    def test_wrong_type_raises(self):
        record = dict(TENANTS["tenant-john"], rentAmount="1200")
        with self.assertRaises(DecodeError):
            tenant_converter.from_wire("tenant-john", record)

    def test_unknown_enum_value_raises(self):
        record = dict(TENANTS["tenant-john"], paymentStatus="lost")
        with self.assertRaises(DecodeError):
            tenant_converter.from_wire("tenant-john", record)

    def test_empty_document_raises(self):
        with self.assertRaises(DecodeError):
            tenant_converter.from_wire("gone", None)

    def test_iso_string_dates_are_accepted(self):
        record = dict(TENANTS["tenant-john"], dueDate="2025-03-05T00:00:00.000Z")
        tenant = tenant_converter.from_wire("tenant-john", record)
        self.assertEqual(tenant.due_date, datetime(2025, 3, 5, tzinfo=timezone.utc))

    def test_property_round_trip_with_dates(self):
        record = dict(
            PROPERTIES["property-shop"],
            rentDueDate=datetime(2025, 4, 1, tzinfo=timezone.utc),
            availabilityDate=datetime(2025, 3, 15, 9, 0, tzinfo=timezone.utc),
            maintenanceCharge=1500,
        )
        prop = property_converter.from_wire("property-shop", record)

        self.assertIs(prop.type, PropertyType.SHOP)
        self.assertIs(prop.category, PropertyCategory.COMMERCIAL)
        self.assertIs(prop.occupancy_status, OccupancyStatus.VACANT)
        self.assertEqual(prop.rent_due_date, datetime(2025, 4, 1, tzinfo=timezone.utc))
        self.assertEqual(prop.maintenance_charge, 1500)
        self.assertEqual(property_converter.to_wire(prop), record)
        self.assertEqual(property_converter.from_wire(prop.id, property_converter.to_wire(prop)), prop)

    def test_transaction_round_trip_keeps_type_name(self):
        transaction = transaction_converter.from_wire("txn-rent-jan", TRANSACTIONS["txn-rent-jan"])
        record = transaction_converter.to_wire(transaction)

        self.assertEqual(record, TRANSACTIONS["txn-rent-jan"])
        self.assertNotIn("direction", record)
        self.assertEqual(transaction_converter.from_wire(transaction.id, record), transaction)

    def test_user_profile_round_trip(self):
        profile = user_profile_converter.from_wire(UID, PROFILE)

        self.assertEqual(profile.id, UID)
        self.assertEqual(profile.upi_id, "sharmaestates@upi")
        self.assertEqual(user_profile_converter.to_wire(profile), PROFILE)
        self.assertEqual(user_profile_converter.from_wire(UID, user_profile_converter.to_wire(profile)), profile)

    def test_round_trip_of_stored_timestamps(self):
        record = dict(
            PROPERTIES["property-sunrise"],
            rentDueDate=DatetimeWithNanoseconds(2025, 4, 1, 0, 0, tzinfo=timezone.utc),
            availabilityDate=DatetimeWithNanoseconds(2025, 3, 15, 9, 0, 0, 250000, tzinfo=timezone.utc),
            createdAt=DatetimeWithNanoseconds(2025, 1, 1, 6, 0, tzinfo=timezone.utc),
        )
        prop = property_converter.from_wire("property-sunrise", record)

        self.assertIs(type(prop.rent_due_date), datetime)
        self.assertIs(type(prop.availability_date), datetime)
        self.assertEqual(prop.availability_date, datetime(2025, 3, 15, 9, 0, 0, 250000, tzinfo=timezone.utc))
        self.assertEqual(property_converter.from_wire(prop.id, property_converter.to_wire(prop)), prop)


class TestToDatetime(unittest.TestCase):

    def test_firestore_timestamp_becomes_plain_datetime(self):
        stored = DatetimeWithNanoseconds(2025, 3, 5, 8, 30, tzinfo=timezone.utc)
        value = to_datetime(stored)

        self.assertIs(type(value), datetime)
        self.assertEqual(value, datetime(2025, 3, 5, 8, 30, tzinfo=timezone.utc))

    def test_naive_datetime_is_taken_as_utc(self):
        self.assertEqual(to_datetime(datetime(2025, 3, 5)), datetime(2025, 3, 5, tzinfo=timezone.utc))

    def test_other_types_are_rejected(self):
        with self.assertRaises(TypeError):
            to_datetime(1741132800)


if __name__ == '__main__':
    unittest.main()
