import logging
from firebase_admin import storage

log = logging.getLogger(__name__)


def receipt_storage_path(owner_id: str, file_name: str, file_type: str = "receipts") -> str:
    return f"Users/{owner_id}/{file_type}/{file_name}.pdf"


def upload_to_storage(file_bytes: bytes, owner_id: str, file_name: str, file_type: str = "receipts"):
    """
    Uploads a PDF to Firebase Storage.
    Returns the storage path if successful, None otherwise.
    """
    try:
        bucket = storage.bucket()

        # e.g. "Users/<uid>/receipts/<receipt_number>.pdf"
        file_path = receipt_storage_path(owner_id, file_name, file_type)
        blob = bucket.blob(file_path)

        blob.upload_from_string(
            file_bytes,
            content_type='application/pdf'
        )

        log.info(f"Successfully uploaded {file_type} file to {file_path}.")
        return file_path

    except Exception as e:
        log.error(f"Error uploading to Firebase Storage: {e}")
        return None


def download_from_storage(file_path: str):
    """
    Downloads a file from Firebase Storage.
    Returns the bytes, or None if the file does not exist.
    """
    bucket = storage.bucket()
    blob = bucket.blob(file_path)
    if not blob.exists():
        log.warning(f"File not found in storage at: {file_path}")
        return None
    return blob.download_as_bytes()
