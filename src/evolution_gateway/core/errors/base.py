"""Base error class shared by every gateway error."""

from __future__ import annotations

from typing import Any, Dict


class GatewayError(Exception):
    """Root of the gateway error hierarchy.

    Subclasses add keyword attributes and extend ``to_dict`` so errors can be
    logged as structured data.
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"error": type(self).__name__, "message": self.message}
