from firebase_functions import scheduler_fn, https_fn
from firebase_functions.options import set_global_options
from firebase_admin import initialize_app, auth, exceptions as firebase_exceptions
import firebase_admin
import json
import logging
from urllib.parse import urlencode

from pydantic import ValidationError

from constants import CLOUD_FUNCTION_BASE_URL, DUE_DATE_WINDOW_DAYS
from logic.ledger_logic import find_duplicate_transaction
from logic.rent_status_logic import (
    get_tenants_to_move_to_due,
    get_tenants_to_move_to_overdue,
    get_upcoming_due_tenants,
)
from models.entities import PaymentStatus
from models.forms import ReceiptForm
from models.recognition import RecognizeTenantPaymentInput, RecognizeTransactionInput
from services.db_service import (
    get_all_tenants,
    get_all_transactions,
    get_property,
    get_tenant,
    get_user_profile,
    set_tenant_payment_status,
    set_tenant_receipt_url,
)
from services.errors import AuthenticationError, RecognitionError
from services.receipt_service import encode_pdf_base64, generate_pending_receipt_pdf, generate_rent_receipt_pdf
from services.recognition_service import (
    match_tenant,
    recognize_tenant_payment,
    recognize_transaction,
    to_transaction_data,
)
from services.storage_service import download_from_storage, receipt_storage_path, upload_to_storage
from utils.generators import new_receipt_number


# Set up a module-level logger
log = logging.getLogger(__name__)

try:
    firebase_admin.get_app()
except ValueError:
    initialize_app()
set_global_options(max_instances=1)


def _json_response(payload, status=200) -> https_fn.Response:
    return https_fn.Response(json.dumps(payload), status=status, mimetype="application/json")


def _authenticate(req: https_fn.Request) -> str:
    """
    Verifies the Firebase ID token in the Authorization header and returns the caller's uid.
    """
    header = req.headers.get("Authorization", "")
    if not header.startswith("Bearer "):
        raise AuthenticationError("Missing bearer token")
    try:
        decoded = auth.verify_id_token(header[len("Bearer "):])
    except (ValueError, firebase_exceptions.FirebaseError) as e:
        raise AuthenticationError(f"Invalid ID token: {e}") from e
    return decoded["uid"]


@scheduler_fn.on_schedule(
    schedule="0 7 * * *",
    timezone=scheduler_fn.Timezone("Asia/Kolkata"),
)
def refresh_rent_statuses(event: scheduler_fn.ScheduledEvent) -> None:
    """
    Daily pass over every tenant: pending rent inside the due window becomes due,
    and unpaid rent past its due date becomes overdue.
    """
    log.info("Starting scheduled rent status refresh.")
    tenants = get_all_tenants()
    if not tenants:
        log.info("No tenants found in the database. Exiting.")
        return

    upcoming = get_upcoming_due_tenants(tenants, DUE_DATE_WINDOW_DAYS)
    for tenant in upcoming:
        log.info(f"  - {tenant.name} ({tenant.id}) owes {tenant.rent_amount} on {tenant.due_date.date().isoformat()}")

    # --- Move pending to due ---
    tenants_to_move_to_due = get_tenants_to_move_to_due(tenants, DUE_DATE_WINDOW_DAYS)
    if tenants_to_move_to_due:
        log.warning(f"Found {len(tenants_to_move_to_due)} tenants to move to due:")
        for tenant in tenants_to_move_to_due:
            log.warning(f"  - Tenant: {tenant.id}, Due: {tenant.due_date.date().isoformat()} (moving to due)")
            set_tenant_payment_status(tenant.id, PaymentStatus.DUE)
    else:
        log.info("No tenants to move to due.")

    # --- Move pending and due to overdue ---
    tenants_to_move_to_overdue = get_tenants_to_move_to_overdue(tenants)
    if tenants_to_move_to_overdue:
        log.warning(f"Found {len(tenants_to_move_to_overdue)} tenants to move to overdue:")
        for entry in tenants_to_move_to_overdue:
            tenant = entry['tenant']
            log.warning(f"  - Tenant: {tenant.id}, Due: {tenant.due_date.date().isoformat()} "
                        f"(moving from {entry['source_status'].value} to overdue)")
            set_tenant_payment_status(tenant.id, PaymentStatus.OVERDUE)
    else:
        log.info("No tenants to move to overdue.")


@https_fn.on_request()
def generate_receipt(req: https_fn.Request) -> https_fn.Response:
    """
    HTTP-triggered function that generates a rent receipt, stores it, records it on
    the tenant and returns the URL it can be fetched from.
    """
    try:
        uid = _authenticate(req)
        data = req.get_json(silent=True)
        if not data:
            log.error("No data in request body.")
            return https_fn.Response("No data received", status=400)
        form = ReceiptForm.model_validate(data)

        tenant = get_tenant(form.tenant_id)
        if not tenant:
            log.warning(f"Tenant {form.tenant_id} not found for receipt generation.")
            return https_fn.Response("Tenant not found.", status=404)

        receipt_number = new_receipt_number()
        pdf_bytes = generate_rent_receipt_pdf(
            tenant, form.month, form.payment_date, receipt_number, profile=get_user_profile(uid)
        )

        file_path = upload_to_storage(pdf_bytes, uid, receipt_number, file_type="receipts")
        if not file_path:
            log.error("Failed to upload receipt.")
            return https_fn.Response("Failed to upload receipt.", status=500)

        query = urlencode({'owner_id': uid, 'receipt_number': receipt_number})
        receipt_url = f"{CLOUD_FUNCTION_BASE_URL}/get_receipt?{query}"
        if not set_tenant_receipt_url(tenant.id, receipt_url, form.payment_date, form.month):
            return https_fn.Response("Failed to record receipt.", status=500)

        return https_fn.Response(receipt_url, status=200)

    except AuthenticationError as e:
        log.warning(f"Rejected generate_receipt call: {e}")
        return https_fn.Response("Unauthorized.", status=401)
    except ValidationError as e:
        log.error(f"Invalid receipt request: {e}")
        return https_fn.Response(f"Invalid request: {e}", status=400)
    except Exception as e:
        log.error(f"An unexpected error occurred in generate_receipt: {e}")
        return https_fn.Response("An error occurred.", status=500)


@https_fn.on_request()
def get_receipt(req: https_fn.Request) -> https_fn.Response:
    """
    HTTP-triggered function that retrieves a receipt PDF from Cloud Storage
    and streams its content directly to the client.
    """
    owner_id = req.args.get('owner_id')
    receipt_number = req.args.get('receipt_number')

    if not owner_id or not receipt_number:
        log.error("Missing owner_id or receipt_number query parameters for get_receipt.")
        return https_fn.Response("Missing identifiers.", status=400)

    try:
        file_path = receipt_storage_path(owner_id, receipt_number, "receipts")
        pdf_content = download_from_storage(file_path)
        if pdf_content is None:
            return https_fn.Response("Receipt file not found in storage.", status=404)

        log.info(f"Streaming receipt PDF for receipt {receipt_number} directly to client.")
        return https_fn.Response(pdf_content, headers={"Content-Type": "application/pdf"}, status=200)

    except Exception as e:
        log.error(f"Error in get_receipt for receipt {receipt_number}: {e}")
        return https_fn.Response("An error occurred.", status=500)


@https_fn.on_request()
def pending_receipt(req: https_fn.Request) -> https_fn.Response:
    """
    HTTP-triggered function that renders the pending payment notice for a tenant
    and returns it base64 encoded, ready to download or share.
    """
    try:
        uid = _authenticate(req)
        data = req.get_json(silent=True) or {}
        tenant_id = data.get('tenantId') or data.get('tenant_id')
        if not tenant_id:
            log.error("Missing tenantId in request.")
            return https_fn.Response("Missing tenantId.", status=400)

        tenant = get_tenant(tenant_id)
        if not tenant:
            return https_fn.Response("Tenant not found.", status=404)

        pdf_bytes = generate_pending_receipt_pdf(tenant, get_property(tenant.property_id), get_user_profile(uid))
        file_name = f"Pending_Receipt_{'_'.join(tenant.name.split())}.pdf"
        return _json_response({'fileName': file_name, 'pdfBase64': encode_pdf_base64(pdf_bytes)})

    except AuthenticationError as e:
        log.warning(f"Rejected pending_receipt call: {e}")
        return https_fn.Response("Unauthorized.", status=401)
    except Exception as e:
        log.error(f"An unexpected error occurred in pending_receipt: {e}")
        return https_fn.Response("An error occurred.", status=500)


@https_fn.on_request()
def recognize_receipt(req: https_fn.Request) -> https_fn.Response:
    """
    HTTP-triggered function that reads a receipt photo and returns a pre-filled
    transaction, flagging an existing transaction with the same amount and day.
    """
    try:
        _authenticate(req)
        request = RecognizeTransactionInput.model_validate(req.get_json(silent=True) or {})
        draft = to_transaction_data(recognize_transaction(request))

        duplicate = find_duplicate_transaction(get_all_transactions(), draft['amount'], draft['date'])
        if duplicate:
            log.warning(f"Recognized receipt looks like a duplicate of transaction {duplicate.id}")

        return _json_response({
            'title': draft['title'],
            'amount': draft['amount'],
            'date': draft['date'].isoformat(),
            'category': draft['category'].value,
            'type': draft['direction'].value,
            'merchant': draft['merchant'],
            'duplicateOf': duplicate.id if duplicate else None,
        })

    except AuthenticationError as e:
        log.warning(f"Rejected recognize_receipt call: {e}")
        return https_fn.Response("Unauthorized.", status=401)
    except ValidationError as e:
        log.error(f"Invalid recognition request: {e}")
        return https_fn.Response(f"Invalid request: {e}", status=400)
    except (RecognitionError, ValueError) as e:
        log.error(f"Could not recognize receipt: {e}")
        return https_fn.Response("Could not read the receipt.", status=422)
    except Exception as e:
        log.error(f"An unexpected error occurred in recognize_receipt: {e}")
        return https_fn.Response("An error occurred.", status=500)


@https_fn.on_request()
def recognize_payment(req: https_fn.Request) -> https_fn.Response:
    """
    HTTP-triggered function that reads a payment screenshot, works out which
    tenant paid and how much.
    """
    try:
        _authenticate(req)
        data = req.get_json(silent=True) or {}
        tenants = get_all_tenants()
        if 'tenants' not in data:
            data['tenants'] = [{'name': t.name, 'rentAmount': t.rent_amount} for t in tenants]
        request = RecognizeTenantPaymentInput.model_validate(data)
        result = recognize_tenant_payment(request)

        tenant = match_tenant(result, tenants)
        if not tenant:
            log.warning(f"No tenant named '{result.tenant_name}' found for the recognized payment")

        return _json_response({
            'tenantName': result.tenant_name,
            'amount': result.amount,
            'tenantId': tenant.id if tenant else None,
        })

    except AuthenticationError as e:
        log.warning(f"Rejected recognize_payment call: {e}")
        return https_fn.Response("Unauthorized.", status=401)
    except ValidationError as e:
        log.error(f"Invalid recognition request: {e}")
        return https_fn.Response(f"Invalid request: {e}", status=400)
    except (RecognitionError, ValueError) as e:
        log.error(f"Could not recognize payment: {e}")
        return https_fn.Response("Could not read the payment screenshot.", status=422)
    except Exception as e:
        log.error(f"An unexpected error occurred in recognize_payment: {e}")
        return https_fn.Response("An error occurred.", status=500)
