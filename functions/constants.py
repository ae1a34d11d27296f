import os

# Firestore collection names
TENANTS_PATH = "tenants"
PROPERTIES_PATH = "properties"
TRANSACTIONS_PATH = "transactions"
USERS_PATH = "users"

# Optional prefix for the collections above, e.g. "accounts/acme"
DATA_SCOPE = os.environ.get("DATA_SCOPE", "")

DUE_DATE_WINDOW_DAYS = int(os.environ.get("DUE_DATE_WINDOW_DAYS", 7))
CLOUD_FUNCTION_BASE_URL = os.environ.get("CLOUD_FUNCTION_BASE_URL", "http://127.0.0.1:5001")

GEMINI_MODEL = os.environ.get("GEMINI_MODEL", "gemini-2.5-flash")
GEMINI_API_KEY_SECRET = os.environ.get("GEMINI_API_KEY_SECRET", "GEMINI_API_KEY")

CURRENCY_LABEL = os.environ.get("CURRENCY_LABEL", "Rs.")
DEFAULT_BUSINESS_NAME = "FinProp"


def scoped_path(name: str, scope: str = DATA_SCOPE) -> str:
    scope = scope.strip("/")
    return f"{scope}/{name}" if scope else name
