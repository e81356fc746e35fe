"""Engine error types.

Every error carries the HTTP status the API answers with, so the transport
maps errors without knowing about individual operations.
"""

from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional, Type

from .logging_config import log_error


class CoverVoteError(Exception):
    """Base exception for all engine errors."""

    status_code = 500
    error_code = "engine_error"

    def __init__(self, message: str, error_code: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        if error_code is not None:
            self.error_code = error_code
        self.context: Dict[str, Any] = dict(context or {})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_type": type(self).__name__,
            "error_message": self.message,
            "error_code": self.error_code,
            "context": self.context,
        }


class ValidationError(CoverVoteError):
    """A required request field is missing or malformed. Nothing was changed."""

    status_code = 400
    error_code = "validation_error"

    def __init__(self, message: str, field_name: Optional[str] = None, field_value: Any = None, **kwargs):
        super().__init__(message, **kwargs)
        self.field_name = field_name
        self.field_value = field_value


class NotFoundError(CoverVoteError):
    """The addressed original or candidate does not exist. Nothing was changed."""

    status_code = 404
    error_code = "not_found"

    def __init__(self, message: str, resource_type: Optional[str] = None, resource_id: Any = None, **kwargs):
        super().__init__(message, **kwargs)
        self.resource_type = resource_type
        self.resource_id = resource_id


class StoreError(CoverVoteError):
    """The store is unavailable or rejected a write."""

    error_code = "store_error"


class ConfigurationError(CoverVoteError):
    """Configuration could not be loaded or validated."""

    error_code = "configuration_error"

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.config_key = config_key


@contextmanager
def ErrorContext(operation: str, convert_to: Type[CoverVoteError] = StoreError, **context) -> Iterator[None]:
    """Attach the operation and its context to any error leaving the block.

    Engine errors keep their type. Anything else, such as a driver error,
    is logged and re-raised as ``convert_to`` with the original chained.

    Args:
        operation: Name of the operation, e.g. "update_original"
        convert_to: Engine error type for foreign exceptions
        **context: Identifiers worth seeing in the log and the error
    """
    details = {"operation": operation, **context}
    try:
        yield
    except CoverVoteError as e:
        e.context.update(details)
        raise
    except Exception as e:
        log_error(__name__, f"{operation} failed", e, **context)
        raise convert_to(
            f"Error during {operation}: {e}",
            context={**details, "original_error": type(e).__name__},
        ) from e
