import base64
import binascii
import mimetypes
import re

_DATA_URI = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,(?P<data>.*)$", re.DOTALL)


def bytes_to_data_uri(data: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def file_to_data_uri(path: str) -> str:
    """Reads an image file once and inlines it as a base64 data URI."""
    mime_type, _ = mimetypes.guess_type(path)
    with open(path, "rb") as f:
        return bytes_to_data_uri(f.read(), mime_type or "application/octet-stream")


def parse_data_uri(uri: str):
    """Returns (mime_type, bytes). Raises ValueError for anything that is not a base64 data URI."""
    match = _DATA_URI.match(uri or "")
    if not match:
        raise ValueError("Expected a data URI of the form 'data:<mimetype>;base64,<encoded_data>'")
    try:
        return match.group("mime"), base64.b64decode(match.group("data"), validate=True)
    except binascii.Error as e:
        raise ValueError(f"Invalid base64 payload: {e}") from e
