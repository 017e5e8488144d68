"""Errors built from gateway HTTP responses."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from evolution_gateway.core.errors.base import GatewayError


class ApiError(GatewayError):
    """Base class for errors derived from a gateway response.

    Attributes:
        status_code: HTTP status returned by the gateway.
        response_data: Decoded response body (dict, list, str or None).
        instance: Gateway instance the request was scoped to, if any.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_data: Any = None,
        instance: Optional[str] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response_data = response_data
        self.instance = instance

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update(
            {
                "status_code": self.status_code,
                "response_data": self.response_data,
                "instance": self.instance,
            }
        )
        return data


class AuthenticationError(ApiError):
    """The gateway rejected the credential (401/403)."""


class NotFoundError(ApiError):
    """The targeted instance or resource does not exist."""


class ValidationError(ApiError):
    """The gateway rejected the payload (422).

    Attributes:
        errors: Field name -> list of messages.
    """

    def __init__(
        self,
        message: str,
        errors: Optional[Mapping[str, List[str]]] = None,
        status_code: Optional[int] = 422,
        response_data: Any = None,
        instance: Optional[str] = None,
    ):
        super().__init__(
            message,
            status_code=status_code,
            response_data=response_data,
            instance=instance,
        )
        self.errors: Dict[str, List[str]] = {k: list(v) for k, v in (errors or {}).items()}

    @classmethod
    def with_errors(
        cls,
        errors: Mapping[str, List[str]],
        **kwargs: Any,
    ) -> "ValidationError":
        """Build an error whose message lists every field failure."""
        if errors:
            parts = [f"{name}: {', '.join(messages)}" for name, messages in errors.items()]
            message = "Validation failed: " + "; ".join(parts)
        else:
            message = "Validation failed"
        return cls(message, errors=errors, **kwargs)

    def first_error(self, field: str) -> Optional[str]:
        messages = self.errors.get(field)
        return messages[0] if messages else None

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["errors"] = self.errors
        return data


class GenericApiError(ApiError):
    """Any other non-success response. Status code and raw body are preserved."""
