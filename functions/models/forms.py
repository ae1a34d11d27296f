"""
Input schemas for everything a user can submit.

Validation happens here, before any write is issued, so a form that fails
never reaches Firestore. Field names are snake_case; the camelCase names used
by the web client are accepted as aliases.
"""

from datetime import datetime
from typing import ClassVar, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from models.entities import (
    OccupancyStatus,
    PaymentMethod,
    PaymentStatus,
    PropertyCategory,
    PropertyType,
    TransactionCategory,
    TransactionType,
)

_OPTIONAL_TEXT_FIELDS = (
    "phone", "email", "property_id", "property_name", "property_address", "notes",
    "current_tenant_id", "area_size", "landmark", "pin_code", "tenant_id", "merchant",
)


class FormModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)

    # Fields the stored entity requires: an edit may leave them out but not clear them
    not_clearable: ClassVar[tuple] = ()

    @field_validator(*_OPTIONAL_TEXT_FIELDS, mode="before", check_fields=False)
    @classmethod
    def _blank_to_none(cls, value):
        # Select boxes post "" for "no selection"
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @model_validator(mode="after")
    def _required_fields_not_cleared(self):
        cleared = [name for name in self.not_clearable if name in self.model_fields_set and getattr(self, name) is None]
        if cleared:
            raise ValueError(f"cannot be cleared: {', '.join(cleared)}")
        return self

    def changes(self) -> dict:
        """Fields the caller actually supplied, by attribute name."""
        return self.model_dump(exclude_unset=True)


class TenantForm(FormModel):
    name: str = Field(..., min_length=1)
    rent_amount: float = Field(..., ge=0)
    due_date: datetime
    payment_method: PaymentMethod = PaymentMethod.CASH
    phone: Optional[str] = None
    email: Optional[str] = Field(None, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    property_id: Optional[str] = None
    property_name: Optional[str] = None
    property_address: Optional[str] = None
    deposit_amount: Optional[float] = Field(None, ge=0)
    net_terms: Optional[int] = Field(None, ge=0)
    notes: Optional[str] = None


class TenantUpdateForm(FormModel):
    not_clearable: ClassVar[tuple] = ("name", "rent_amount", "due_date", "payment_status", "payment_method")

    name: Optional[str] = Field(None, min_length=1)
    rent_amount: Optional[float] = Field(None, ge=0)
    due_date: Optional[datetime] = None
    payment_status: Optional[PaymentStatus] = None
    payment_method: Optional[PaymentMethod] = None
    phone: Optional[str] = None
    email: Optional[str] = Field(None, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    property_id: Optional[str] = None
    property_name: Optional[str] = None
    property_address: Optional[str] = None
    deposit_amount: Optional[float] = Field(None, ge=0)
    last_payment_month: Optional[str] = None
    last_payment_date: Optional[datetime] = None
    last_receipt_url: Optional[str] = None
    net_terms: Optional[int] = Field(None, ge=0)
    notes: Optional[str] = None


class PropertyForm(FormModel):
    name: str = Field(..., min_length=1)
    type: PropertyType = PropertyType.APARTMENT
    category: PropertyCategory = PropertyCategory.RESIDENTIAL
    address: str = Field(..., min_length=1)
    rent_amount: float = Field(..., ge=0)
    occupancy_status: OccupancyStatus = OccupancyStatus.VACANT
    current_tenant_id: Optional[str] = None
    area_size: Optional[str] = None
    landmark: Optional[str] = None
    pin_code: Optional[str] = None
    deposit_amount: Optional[float] = Field(None, ge=0)
    maintenance_charge: Optional[float] = Field(None, ge=0)
    rent_due_date: Optional[datetime] = None
    availability_date: Optional[datetime] = None
    notes: Optional[str] = None


class PropertyUpdateForm(FormModel):
    not_clearable: ClassVar[tuple] = ("name", "type", "category", "address", "rent_amount", "occupancy_status")

    name: Optional[str] = Field(None, min_length=1)
    type: Optional[PropertyType] = None
    category: Optional[PropertyCategory] = None
    address: Optional[str] = Field(None, min_length=1)
    rent_amount: Optional[float] = Field(None, ge=0)
    occupancy_status: Optional[OccupancyStatus] = None
    current_tenant_id: Optional[str] = None
    area_size: Optional[str] = None
    landmark: Optional[str] = None
    pin_code: Optional[str] = None
    deposit_amount: Optional[float] = Field(None, ge=0)
    maintenance_charge: Optional[float] = Field(None, ge=0)
    rent_due_date: Optional[datetime] = None
    availability_date: Optional[datetime] = None
    notes: Optional[str] = None


class TransactionForm(FormModel):
    title: str = Field(..., min_length=1)
    amount: float = Field(..., ge=0.01)
    direction: TransactionType = Field(TransactionType.EXPENSE, alias="type")
    category: TransactionCategory = TransactionCategory.OTHER
    date: datetime
    notes: Optional[str] = None
    property_id: Optional[str] = None
    tenant_id: Optional[str] = None
    merchant: Optional[str] = None
    receipt_url: Optional[str] = None


class TransactionUpdateForm(FormModel):
    not_clearable: ClassVar[tuple] = ("title", "amount", "direction", "category", "date")

    title: Optional[str] = Field(None, min_length=1)
    amount: Optional[float] = Field(None, ge=0.01)
    direction: Optional[TransactionType] = Field(None, alias="type")
    category: Optional[TransactionCategory] = None
    date: Optional[datetime] = None
    notes: Optional[str] = None
    property_id: Optional[str] = None
    tenant_id: Optional[str] = None
    merchant: Optional[str] = None
    receipt_url: Optional[str] = None


class ProfileForm(FormModel):
    business_name: str = Field(..., min_length=1)
    owner_name: Optional[str] = None
    business_address: Optional[str] = None
    business_phone: Optional[str] = None
    business_email: Optional[str] = None
    upi_id: Optional[str] = None
    bank_details: Optional[str] = None


class ReceiptForm(FormModel):
    tenant_id: str = Field(..., min_length=1)
    payment_date: datetime
    month: str = Field(..., min_length=1)
