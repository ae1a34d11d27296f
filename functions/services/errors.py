from enum import Enum


class DecodeError(ValueError):
    """A stored record could not be turned back into an entity."""

    def __init__(self, path: str, key: str, reason: str):
        self.path = path
        self.key = key
        self.reason = reason
        super().__init__(f"Cannot decode {path}/{key}: {reason}")


class SubscriptionError(RuntimeError):
    """A live subscription stopped because of a transport or decode fault."""

    def __init__(self, path: str, cause: BaseException):
        self.path = path
        self.cause = cause
        super().__init__(f"Subscription to {path} failed: {cause}")


class WriteErrorKind(str, Enum):
    PERMISSION_DENIED = "PermissionDenied"
    UNAVAILABLE = "Unavailable"
    INVALID_ARGUMENT = "InvalidArgument"
    UNKNOWN = "Unknown"


class PropertyInUseError(Exception):
    def __init__(self, property_id: str, tenant_ids: list):
        self.property_id = property_id
        self.tenant_ids = tenant_ids
        super().__init__(f"Property {property_id} is assigned to tenant(s) {', '.join(tenant_ids)}")


class RecognitionError(Exception):
    """The model returned nothing that matches the response schema."""


class AuthenticationError(Exception):
    pass
