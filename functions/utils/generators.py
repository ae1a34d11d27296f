import secrets
import string
import uuid

_AUTO_ID_ALPHABET = string.ascii_letters + string.digits


def new_document_id(length: int = 20) -> str:
    """Random document key in the same shape as Firestore's auto ids."""
    return "".join(secrets.choice(_AUTO_ID_ALPHABET) for _ in range(length))


def new_receipt_number() -> str:
    return str(uuid.uuid4())
