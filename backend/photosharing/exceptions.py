"""
PhotoSharing Backend — Custom Exception Hierarchy
===================================================

What:  Application-specific exceptions for the data layer, receipt
       validation and client-facing service faults.
How:   Each exception carries a message and an optional context dict.
       Global exception handlers (registered in main.py) turn them into
       ServiceFault JSON responses with the right HTTP status and code.

Exception Hierarchy:
    PhotoSharingError (base)
    ├── DataLayerException      → 500 (6000, or 6001 for UNKNOWN)
    ├── IapValidationException  → 400 (2500)
    └── ServiceFaultError       → status/code carried by the fault
"""

import enum
from typing import Any, Dict, List, Optional

FAULT_SOURCE = "PhotoSharingAppService"


class PhotoSharingError(Exception):
    """
    Base exception for all PhotoSharing application errors.

    Attributes:
        message:  Human-readable description
        context:  Additional debug info (logged, not returned to clients)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


# ══════════════════════════════════════════════════════════════════════════
# Data Layer
# ══════════════════════════════════════════════════════════════════════════

class DataLayerError(str, enum.Enum):
    """Discriminant carried by every repository failure."""

    NOT_FOUND = "NotFound"
    DUPLICATE_KEY_INSERT = "DuplicateKeyInsert"
    INVALID_CONFIGURATION = "InvalidConfiguration"
    FAILED_GOLD_TRANSACTION = "FailedGoldTransaction"
    UNKNOWN = "Unknown"


class DataLayerException(PhotoSharingError):
    """
    The single error type raised by the repository layer.

    The wrapped cause is also chained through ``raise ... from`` at the
    raise site, so tracebacks show the original store failure.
    """

    def __init__(
        self,
        error: DataLayerError,
        message: str,
        cause: Optional[BaseException] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["error"] = error.value
        if cause is not None:
            ctx["cause"] = type(cause).__name__
        super().__init__(message=message, context=ctx)
        self.error = error
        self.cause = cause


# ══════════════════════════════════════════════════════════════════════════
# In-App Purchase Validation
# ══════════════════════════════════════════════════════════════════════════

class IapValidationError(int, enum.Enum):
    UNKNOWN = 0
    DUPLICATE_RECEIPT = 1
    BAD_SIGNATURE = 2
    IAP_PUBLIC_CERTIFICATE_NOT_DOWNLOADABLE = 3
    NO_RECEIPT = 4


class IapValidationException(PhotoSharingError):
    """Raised when an in-app purchase receipt cannot be accepted."""

    def __init__(
        self,
        error: IapValidationError,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["error"] = error.name
        super().__init__(message=message, context=ctx)
        self.error = error


# ══════════════════════════════════════════════════════════════════════════
# Service Faults (client-facing)
# ══════════════════════════════════════════════════════════════════════════

class FaultCode(int, enum.Enum):
    # 2000-2999: Bad Request
    ID_MISMATCH = 2000
    IAP_VALIDATION_ERROR = 2500
    # 3000-3999: Forbidden
    USER_NULL_ERROR = 3000
    INCORRECT_USER = 3500
    DUPLICATE_CATEGORY = 3750
    USER_BALANCE_TOO_LOW = 3999
    # 6000-6999: Internal Server Error
    DATA_LAYER_ERROR = 6000
    UNKNOWN_INTERNAL_FAILURE = 6001


class ServiceFaultError(PhotoSharingError):
    """
    A fault that goes back to the client as a ServiceFaultContract body.

    Use the factory classmethods below rather than building one by hand,
    so status codes and descriptions stay consistent across routes.
    """

    def __init__(
        self,
        status_code: int,
        code: FaultCode,
        description: str,
        details: Optional[List[Any]] = None,
        source: str = FAULT_SOURCE,
    ):
        super().__init__(message=description, context={"code": int(code)})
        self.status_code = status_code
        self.code = code
        self.description = description
        self.details = [str(d) for d in (details or []) if d is not None]
        self.source = source

    @classmethod
    def data_layer(cls, details: str) -> "ServiceFaultError":
        return cls(
            500,
            FaultCode.DATA_LAYER_ERROR,
            "An unknown error occurred while communicating with data layer.",
            [details],
        )

    @classmethod
    def duplicate_category(cls, details: str) -> "ServiceFaultError":
        return cls(403, FaultCode.DUPLICATE_CATEGORY, "Category of the same name exists.", [details])

    @classmethod
    def iap_validation(cls, details: str) -> "ServiceFaultError":
        return cls(400, FaultCode.IAP_VALIDATION_ERROR, "Iap could not be validated.", [details])

    @classmethod
    def id_mismatch(cls, path_id: str, body_id: str) -> "ServiceFaultError":
        return cls(
            400,
            FaultCode.ID_MISMATCH,
            "The ID value present in the URI differs from the one present in the request body.",
            [path_id, body_id],
        )

    @classmethod
    def not_allowed(cls) -> "ServiceFaultError":
        return cls(
            403,
            FaultCode.INCORRECT_USER,
            "The logged in user does not have access to perform this operation.",
        )

    @classmethod
    def unknown_internal_failure(cls, source: str = FAULT_SOURCE) -> "ServiceFaultError":
        return cls(
            500,
            FaultCode.UNKNOWN_INTERNAL_FAILURE,
            "The service has encountered an unknown internal server error.",
            source=source,
        )

    @classmethod
    def user_balance_too_low(cls) -> "ServiceFaultError":
        return cls(403, FaultCode.USER_BALANCE_TOO_LOW, "User's balance is too low for this operation.")

    @classmethod
    def user_null(cls) -> "ServiceFaultError":
        return cls(403, FaultCode.USER_NULL_ERROR, "This can only be performed by signed in clients.")
