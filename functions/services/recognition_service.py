"""
Structured field extraction from receipt images and payment screenshots.

Each task is one Gemini call: the inline image plus a rendered prompt in, JSON
constrained by a pydantic schema out. There is no retry or timeout handling
here; callers decide what to do with a RecognitionError.
"""

import logging
from datetime import datetime

from google import genai
from google.genai import types
from pydantic import ValidationError

from constants import GEMINI_API_KEY_SECRET, GEMINI_MODEL
from logic.ledger_logic import direction_for_category
from models.entities import TransactionCategory
from models.recognition import (
    RecognizedTenantPayment,
    RecognizedTransaction,
    RecognizeTenantPaymentInput,
    RecognizeTransactionInput,
)
from services.errors import RecognitionError
from services.secret_manager_service import get_secret
from utils.date_helper import ensure_utc, utc_now
from utils.media_tools import parse_data_uri
from utils.template_renderer import render_template

log = logging.getLogger(__name__)

_client = None


def get_client():
    global _client
    if _client is None:
        api_key = get_secret(GEMINI_API_KEY_SECRET)
        if not api_key:
            raise RecognitionError(f"No Gemini API key found in secret '{GEMINI_API_KEY_SECRET}'")
        _client = genai.Client(api_key=api_key)
    return _client


def _generate(prompt: str, photo_data_uri: str, schema, client=None):
    mime_type, image = parse_data_uri(photo_data_uri)
    client = client or get_client()
    response = client.models.generate_content(
        model=GEMINI_MODEL,
        contents=[types.Part.from_bytes(data=image, mime_type=mime_type), prompt],
        config=types.GenerateContentConfig(
            response_mime_type="application/json",
            response_schema=schema,
        ),
    )
    if isinstance(response.parsed, schema):
        return response.parsed
    if not response.text:
        raise RecognitionError("The model returned an empty response")
    try:
        return schema.model_validate_json(response.text)
    except ValidationError as e:
        raise RecognitionError(f"The model response does not match {schema.__name__}: {e}") from e


def recognize_transaction(request: RecognizeTransactionInput, client=None) -> RecognizedTransaction:
    prompt = render_template(
        "recognize_transaction.txt",
        context=request.context,
        categories=[c.value for c in TransactionCategory],
    )
    result = _generate(prompt, request.photo_data_uri, RecognizedTransaction, client)
    log.info(f"Recognized transaction '{result.title}' for {result.amount}")
    return result


def recognize_tenant_payment(request: RecognizeTenantPaymentInput, client=None) -> RecognizedTenantPayment:
    prompt = render_template("recognize_tenant_payment.txt", tenants=request.tenants)
    result = _generate(prompt, request.photo_data_uri, RecognizedTenantPayment, client)
    log.info(f"Recognized payment of {result.amount} from '{result.tenant_name}'")
    return result


def to_transaction_data(result: RecognizedTransaction) -> dict:
    """Pre-fills a transaction form from a recognized receipt."""
    date = utc_now()
    if result.date:
        try:
            date = ensure_utc(datetime.fromisoformat(result.date))
        except ValueError:
            log.warning(f"Could not parse recognized date '{result.date}', using today")
    return {
        'title': result.title,
        'amount': result.amount,
        'date': date,
        'category': result.category,
        'direction': direction_for_category(result.category),
        'merchant': result.merchant,
    }


def match_tenant(result: RecognizedTenantPayment, tenants):
    """The tenant whose name matches the recognized name, ignoring case and spacing."""
    wanted = " ".join(result.tenant_name.split()).casefold()
    return next((t for t in tenants if " ".join(t.name.split()).casefold() == wanted), None)
