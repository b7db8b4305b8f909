"""
Error taxonomy shared by services and routes

Services raise these; the API layer renders them through a single exception
handler as ``{"detail": <public message>, "type": <code>}``.
"""
from typing import Any, Dict, Optional


class HalalToolsError(Exception):
    """Base class for errors that map onto an HTTP response"""

    status_code = 500
    code = "error"
    public_message: Optional[str] = None

    def __init__(self, message: str, metadata: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.metadata = metadata or {}

    @property
    def detail(self) -> str:
        """Message safe to show to the caller"""
        return self.public_message or self.message

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.detail, "type": self.code}


class ValidationError(HalalToolsError):
    """Request data is missing or malformed"""
    status_code = 400
    code = "validation_error"


class UnknownContractType(ValidationError):
    """Contract type tag has no template"""
    status_code = 404
    code = "unknown_contract_type"

    def __init__(self, contract_type: str):
        super().__init__(
            f"Invalid contract type selected: {contract_type!r}",
            metadata={"contract_type": contract_type},
        )
        self.contract_type = contract_type


class NotFound(HalalToolsError):
    status_code = 404
    code = "not_found"


class Forbidden(HalalToolsError):
    status_code = 403
    code = "forbidden"


class QuotaExhausted(HalalToolsError):
    """Free usage for the current month is used up"""
    status_code = 403
    code = "quota_exhausted"

    def __init__(self, message: str = "Free usage limit reached. Please upgrade to continue."):
        super().__init__(message)


class TooManyRequests(HalalToolsError):
    status_code = 429
    code = "too_many_requests"


class UpstreamUnavailable(HalalToolsError):
    """A third-party API (LLM, price feed, mail server) failed"""
    status_code = 503
    code = "upstream_unavailable"
    public_message = "The service is temporarily unavailable. Please try again later."

    def __init__(self, message: str, public_message: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        if public_message:
            self.public_message = public_message


class StorageError(HalalToolsError):
    """Database unavailable or a statement failed"""
    status_code = 500
    code = "storage_error"
    public_message = "Server error. Please try again later."
