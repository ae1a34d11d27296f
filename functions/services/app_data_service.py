"""
The single read/write surface over a caller's data.

AppData opens one live subscription per entity collection (tenants,
properties, transactions and the caller's profile document) and binds the
optimistic writer to each collection through its converter. Reads are the
latest published snapshots; writes validate their input, then return at once
and show up when the store pushes the change back.
"""

import dataclasses
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from constants import DATA_SCOPE, PROPERTIES_PATH, TENANTS_PATH, TRANSACTIONS_PATH, USERS_PATH, scoped_path
from models.entities import PaymentStatus, Property, Tenant, Transaction, UserProfile
from models.forms import (
    ProfileForm,
    PropertyForm,
    PropertyUpdateForm,
    TenantForm,
    TenantUpdateForm,
    TransactionForm,
    TransactionUpdateForm,
)
from services.converters import (
    property_converter,
    tenant_converter,
    transaction_converter,
    user_profile_converter,
)
from services.errors import PropertyInUseError
from services.subscription_service import FirestoreSnapshotSource, QuerySpec, SubscriptionRegistry
from services.write_service import CollectionWriter, OptimisticWriter
from utils.date_helper import month_label, normalize_datetimes, utc_now
from utils.generators import new_document_id

log = logging.getLogger(__name__)

# Order in which constituent errors are reported
COLLECTION_ORDER = ("tenants", "properties", "transactions", "profile")


@dataclass(frozen=True)
class SessionContext:
    """Who is calling and which slice of the database they work in."""

    uid: str
    scope: str = DATA_SCOPE

    def collection_path(self, name: str) -> str:
        return scoped_path(name, self.scope)


def _validated_changes(data, form_cls) -> dict:
    if dataclasses.is_dataclass(data):
        changes = {
            f.name: getattr(data, f.name)
            for f in dataclasses.fields(data)
            if f.name not in ("id", "created_at", "updated_at") and getattr(data, f.name) is not None
        }
        form = form_cls.model_validate(changes)
    elif isinstance(data, form_cls):
        form = data
    else:
        form = form_cls.model_validate(data)
    return normalize_datetimes(form.changes())


def _validated_values(data, form_cls) -> dict:
    form = data if isinstance(data, form_cls) else form_cls.model_validate(data)
    return normalize_datetimes(form.model_dump())


class AppData:
    def __init__(self, db, session: SessionContext, registry: SubscriptionRegistry = None,
                 writer: OptimisticWriter = None, events=None):
        self.session = session
        self._registry = registry or SubscriptionRegistry(FirestoreSnapshotSource(db))
        self._owns_writer = writer is None
        self._writer = writer or OptimisticWriter(db, events)

        self._tenants = CollectionWriter(self._writer, session.collection_path(TENANTS_PATH), tenant_converter)
        self._properties = CollectionWriter(self._writer, session.collection_path(PROPERTIES_PATH), property_converter)
        self._transactions = CollectionWriter(
            self._writer, session.collection_path(TRANSACTIONS_PATH), transaction_converter
        )
        self._profiles = CollectionWriter(self._writer, USERS_PATH, user_profile_converter)

        self._queries = {
            "tenants": (QuerySpec(self._tenants.path), tenant_converter),
            "properties": (QuerySpec(self._properties.path), property_converter),
            "transactions": (QuerySpec(self._transactions.path), transaction_converter),
            "profile": (QuerySpec(USERS_PATH, document_id=session.uid), user_profile_converter),
        }
        self._live = {}
        self._detach = []
        self._listeners = []

    # Lifecycle

    def open(self) -> "AppData":
        if self._live:
            return self
        for name in COLLECTION_ORDER:
            query, converter = self._queries[name]
            live = self._registry.acquire(query, converter)
            self._live[name] = live
            self._detach.append(live.subscribe(self._on_collection_change))
        log.info(f"Opened data context for {self.session.uid}")
        return self

    def close(self):
        for detach in self._detach:
            detach()
        self._detach = []
        for live in self._live.values():
            self._registry.release(live)
        self._live = {}
        if self._owns_writer:
            self._writer.flush()
            self._writer.close()
        log.info(f"Closed data context for {self.session.uid}")

    def __enter__(self):
        return self.open()

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def on_change(self, listener):
        """listener(app_data) runs whenever any constituent collection publishes."""
        self._listeners.append(listener)

        def remove():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return remove

    def _on_collection_change(self, state):
        # Registration calls back straight away, before every collection is wired up.
        if len(self._live) < len(COLLECTION_ORDER):
            return
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                log.exception("Data context listener failed")

    def flush(self, timeout: float = None) -> bool:
        return self._writer.flush(timeout)

    # Read model

    def _items(self, name) -> tuple:
        live = self._live.get(name)
        return live.items if live else ()

    @property
    def tenants(self) -> tuple:
        return self._items("tenants")

    @property
    def properties(self) -> tuple:
        return self._items("properties")

    @property
    def transactions(self) -> tuple:
        return self._items("transactions")

    @property
    def user_profile(self) -> Optional[UserProfile]:
        profiles = self._items("profile")
        return profiles[0] if profiles else None

    @property
    def loading(self) -> bool:
        if not self._live:
            return True
        return any(live.is_loading for live in self._live.values())

    @property
    def error(self):
        for name in COLLECTION_ORDER:
            live = self._live.get(name)
            if live is not None and live.error is not None:
                return live.error
        return None

    def get_tenant(self, tenant_id: str) -> Optional[Tenant]:
        return next((t for t in self.tenants if t.id == tenant_id), None)

    def get_property(self, property_id: str) -> Optional[Property]:
        return next((p for p in self.properties if p.id == property_id), None)

    def resubscribe(self):
        """Reopens every collection that stopped on an error."""
        for live in self._live.values():
            live.resubscribe()

    # Tenants

    def add_tenant(self, data) -> Tenant:
        now = utc_now()
        tenant = Tenant(
            id=new_document_id(),
            payment_status=PaymentStatus.PENDING,
            created_at=now,
            updated_at=now,
            **_validated_values(data, TenantForm),
        )
        self._tenants.create(tenant)
        log.info(f"Queued new tenant {tenant.id} ({tenant.name})")
        return tenant

    def update_tenant(self, tenant_id: str, data):
        changes = _validated_changes(data, TenantUpdateForm)
        changes["updated_at"] = utc_now()
        self._tenants.update(tenant_id, changes)

    def remove_tenant(self, tenant_id: str):
        self._tenants.remove(tenant_id)

    def mark_tenant_paid(self, tenant_id: str, payment_date: datetime = None):
        now = utc_now()
        self._tenants.update(tenant_id, normalize_datetimes({
            "payment_status": PaymentStatus.PAID,
            "last_payment_date": payment_date or now,
            "updated_at": now,
        }))

    def record_receipt_generation(self, tenant_id: str, month: str, payment_date: datetime,
                                  receipt_url: str = None):
        """Starts a payment cycle: the tenant owes the month the receipt was issued for."""
        changes = {
            "payment_status": PaymentStatus.DUE,
            "last_receipt_generation_date": payment_date,
            "last_payment_month": month or month_label(payment_date),
            "updated_at": utc_now(),
        }
        if receipt_url:
            changes["last_receipt_url"] = receipt_url
        self._tenants.update(tenant_id, normalize_datetimes(changes))

    # Properties

    def add_property(self, data) -> Property:
        now = utc_now()
        prop = Property(id=new_document_id(), created_at=now, updated_at=now,
                        **_validated_values(data, PropertyForm))
        self._properties.create(prop)
        log.info(f"Queued new property {prop.id} ({prop.name})")
        return prop

    def update_property(self, property_id: str, data):
        changes = _validated_changes(data, PropertyUpdateForm)
        changes["updated_at"] = utc_now()
        self._properties.update(property_id, changes)

    def remove_property(self, property_id: str):
        tenant_ids = [t.id for t in self.tenants if t.property_id == property_id]
        if tenant_ids:
            raise PropertyInUseError(property_id, tenant_ids)
        self._properties.remove(property_id)

    # Ledger

    def add_transaction(self, data) -> Transaction:
        now = utc_now()
        transaction = Transaction(id=new_document_id(), created_at=now, updated_at=now,
                                  **_validated_values(data, TransactionForm))
        self._transactions.create(transaction)
        log.info(f"Queued new transaction {transaction.id} ({transaction.title})")
        return transaction

    def update_transaction(self, transaction_id: str, data):
        changes = _validated_changes(data, TransactionUpdateForm)
        changes["updated_at"] = utc_now()
        self._transactions.update(transaction_id, changes)

    def remove_transaction(self, transaction_id: str):
        self._transactions.remove(transaction_id)

    # Profile

    def update_user_profile(self, data):
        form = data if isinstance(data, ProfileForm) else ProfileForm.model_validate(data)
        self._profiles.set_merged(self.session.uid, form.changes())
