"""In-memory entity types shared by the data layer, logic and services."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class PaymentStatus(str, Enum):
    PAID = "paid"
    PENDING = "pending"
    DUE = "due"
    OVERDUE = "overdue"
    PARTIAL = "partial"


class PaymentMethod(str, Enum):
    CASH = "cash"
    BANK = "bank"
    UPI = "upi"
    OTHER = "other"


class PropertyType(str, Enum):
    APARTMENT = "apartment"
    SHOP = "shop"
    FLAT = "flat"
    LAND = "land"
    OFFICE = "office"


class PropertyCategory(str, Enum):
    RESIDENTIAL = "residential"
    COMMERCIAL = "commercial"
    AGRICULTURAL = "agricultural"


class OccupancyStatus(str, Enum):
    VACANT = "vacant"
    OCCUPIED = "occupied"
    RESERVED = "reserved"


class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class TransactionCategory(str, Enum):
    RENT_RECEIVED = "Rent Received"
    UTILITIES = "Utilities"
    MAINTENANCE = "Maintenance"
    SALARY = "Salary"
    GROCERIES = "Groceries"
    OTHER = "Other"


# Categories that are booked as income when a receipt is recognized
INCOME_CATEGORIES = frozenset({TransactionCategory.RENT_RECEIVED, TransactionCategory.SALARY})


@dataclass(frozen=True)
class Tenant:
    id: str
    name: str
    rent_amount: float
    due_date: datetime
    payment_status: PaymentStatus = PaymentStatus.PENDING
    payment_method: PaymentMethod = PaymentMethod.CASH
    phone: Optional[str] = None
    email: Optional[str] = None
    property_id: Optional[str] = None
    property_name: Optional[str] = None
    property_address: Optional[str] = None
    deposit_amount: Optional[float] = None
    last_payment_month: Optional[str] = None
    last_payment_date: Optional[datetime] = None
    last_receipt_url: Optional[str] = None
    last_receipt_generation_date: Optional[datetime] = None
    net_terms: Optional[int] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class Property:
    id: str
    name: str
    type: PropertyType
    category: PropertyCategory
    address: str
    rent_amount: float
    occupancy_status: OccupancyStatus = OccupancyStatus.VACANT
    current_tenant_id: Optional[str] = None
    area_size: Optional[str] = None
    landmark: Optional[str] = None
    pin_code: Optional[str] = None
    deposit_amount: Optional[float] = None
    maintenance_charge: Optional[float] = None
    rent_due_date: Optional[datetime] = None
    availability_date: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class Transaction:
    id: str
    title: str
    amount: float
    direction: TransactionType
    category: TransactionCategory
    date: datetime
    property_id: Optional[str] = None
    tenant_id: Optional[str] = None
    notes: Optional[str] = None
    merchant: Optional[str] = None
    receipt_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class UserProfile:
    id: str
    business_name: Optional[str] = None
    owner_name: Optional[str] = None
    business_address: Optional[str] = None
    business_phone: Optional[str] = None
    business_email: Optional[str] = None
    upi_id: Optional[str] = None
    bank_details: Optional[str] = None
