# functions/db_service.py

from firebase_admin import firestore
import logging

from constants import DATA_SCOPE, PROPERTIES_PATH, TENANTS_PATH, TRANSACTIONS_PATH, USERS_PATH, scoped_path
from models.entities import PaymentStatus
from services.converters import property_converter, tenant_converter, transaction_converter, user_profile_converter
from services.errors import DecodeError
from utils.date_helper import utc_now

log = logging.getLogger(__name__)


def get_db():
    """
    Returns the Firestore client of the default Firebase app.
    """
    return firestore.client()


def get_all_tenants(scope: str = DATA_SCOPE) -> list:
    """
    Gets all tenants from Firestore. Records that cannot be decoded are skipped.
    """
    tenants = []
    for doc in get_db().collection(scoped_path(TENANTS_PATH, scope)).stream():
        try:
            tenants.append(tenant_converter.from_wire(doc.id, doc.to_dict()))
        except DecodeError as e:
            log.warning(f"Skipping tenant {doc.id}: {e}")
    return tenants


def get_all_transactions(scope: str = DATA_SCOPE) -> list:
    """
    Gets all ledger transactions from Firestore. Records that cannot be decoded are skipped.
    """
    transactions = []
    for doc in get_db().collection(scoped_path(TRANSACTIONS_PATH, scope)).stream():
        try:
            transactions.append(transaction_converter.from_wire(doc.id, doc.to_dict()))
        except DecodeError as e:
            log.warning(f"Skipping transaction {doc.id}: {e}")
    return transactions


def get_tenant(tenant_id: str, scope: str = DATA_SCOPE):
    """
    Gets a single tenant, or None if it does not exist.
    """
    doc = get_db().collection(scoped_path(TENANTS_PATH, scope)).document(tenant_id).get()
    if not doc.exists:
        return None
    return tenant_converter.from_wire(doc.id, doc.to_dict())


def get_property(property_id: str, scope: str = DATA_SCOPE):
    """
    Gets a single property, or None if it does not exist.
    """
    if not property_id:
        return None
    doc = get_db().collection(scoped_path(PROPERTIES_PATH, scope)).document(property_id).get()
    if not doc.exists:
        return None
    return property_converter.from_wire(doc.id, doc.to_dict())


def get_user_profile(uid: str):
    """
    Gets the profile of a user, or None if they have not saved one yet.
    """
    doc = get_db().collection(USERS_PATH).document(uid).get()
    if not doc.exists:
        return None
    return user_profile_converter.from_wire(doc.id, doc.to_dict())


def set_tenant_payment_status(tenant_id: str, status: PaymentStatus, scope: str = DATA_SCOPE) -> bool:
    """
    Moves a tenant to a new payment status with a partial update.
    Returns True if the write succeeded, False otherwise.
    """
    try:
        ref = get_db().collection(scoped_path(TENANTS_PATH, scope)).document(tenant_id)
        ref.update(tenant_converter.to_wire_fields({
            'payment_status': status,
            'updated_at': utc_now(),
        }))
        log.info(f"Successfully moved tenant {tenant_id} to {status.value}")
        return True
    except Exception as e:
        log.error(f"Error moving tenant {tenant_id} to {status.value}: {e}")
        return False


def set_tenant_receipt_url(tenant_id: str, receipt_url: str, generated_at, month: str,
                           scope: str = DATA_SCOPE) -> bool:
    """
    Stores the link of the latest receipt on the tenant and opens the payment cycle.
    """
    try:
        ref = get_db().collection(scoped_path(TENANTS_PATH, scope)).document(tenant_id)
        ref.update(tenant_converter.to_wire_fields({
            'payment_status': PaymentStatus.DUE,
            'last_receipt_url': receipt_url,
            'last_receipt_generation_date': generated_at,
            'last_payment_month': month,
            'updated_at': utc_now(),
        }))
        log.info(f"Stored receipt link for tenant {tenant_id}")
        return True
    except Exception as e:
        log.error(f"Error storing receipt link for tenant {tenant_id}: {e}")
        return False
