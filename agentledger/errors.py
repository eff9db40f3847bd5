"""
Error taxonomy for the ledger core

- ValidationError: bad input, rejected before any persistence
- StorageError: ledger backend unreachable or write failed
- DeliveryError: webhook transport failure, handled internally
- NotFoundError: agent-scoped lookup found nothing
- ForbiddenError: caller asked for another agent's data
"""
from typing import Any, Dict, Optional


class AgentLedgerError(Exception):
    """
    Base exception for all core errors

    Carries an error code for clients, a user message that is safe to show,
    and the HTTP status the calling layer should answer with.
    """

    def __init__(
        self,
        message: str,
        error_code: str,
        user_message: Optional[str] = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.user_message = user_message or "An error occurred. Please try again."
        self.http_status = http_status

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for API responses"""
        return {
            "status": "error",
            "code": self.error_code,
            "message": self.user_message,
        }


class ValidationError(AgentLedgerError):
    """Request rejected by input validation. The reason is shown verbatim."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            error_code="validation_failed",
            user_message=message,
            http_status=400,
        )


class StorageError(AgentLedgerError):
    """Ledger backend failure. Backend detail stays in the logs."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            error_code="storage_unavailable",
            user_message="The request could not be completed. Please retry.",
            http_status=503,
        )


class DeliveryError(AgentLedgerError):
    """Webhook endpoint answered non-2xx or could not be reached"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(
            message=message,
            error_code="webhook_delivery_failed",
            http_status=502,
        )
        self.status_code = status_code


class NotFoundError(AgentLedgerError):
    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            message=f"{resource} {resource_id} not found",
            error_code="not_found",
            user_message=f"{resource} not found",
            http_status=404,
        )


class ForbiddenError(AgentLedgerError):
    def __init__(self, message: str):
        super().__init__(
            message=message,
            error_code="forbidden",
            user_message="You can only access your own data",
            http_status=403,
        )
