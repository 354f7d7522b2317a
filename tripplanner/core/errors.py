"""
Error taxonomy for the itinerary planning pipeline.

Every failure a client can see is a PlanningError with a stable ``kind`` and
an HTTP status. Geocoding failures never reach a client and are kept apart.
"""

from typing import Any, Dict, Optional


class ConfigError(Exception):
    """Fatal startup condition (missing or invalid asset/configuration)."""


class PlanningError(Exception):
    kind = "planning_error"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.kind, "message": self.message}


class InvalidInput(PlanningError):
    """Missing or contradictory trip constraints."""

    kind = "invalid_input"
    status_code = 400

    def __init__(self, message: str, errors: Optional[list] = None):
        super().__init__(message)
        self.errors = errors or []

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        if self.errors:
            body["errors"] = self.errors
        return body


class UpstreamUnavailable(PlanningError):
    """Generation provider unreachable, erroring, unauthorized or out of quota."""

    kind = "upstream_unavailable"
    status_code = 500


class MalformedPlan(PlanningError):
    """Generation succeeded but its output is not a valid plan."""

    kind = "malformed_plan"
    status_code = 500

    def __init__(self, message: str, raw_text: str = "", excerpt_length: int = 500):
        super().__init__(message)
        self.raw_text = raw_text or ""
        self.raw_excerpt = self.raw_text[:excerpt_length]

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        body["raw_excerpt"] = self.raw_excerpt
        return body


class PlanningTimeout(PlanningError):
    kind = "timeout"
    status_code = 504


class GeocodeLookupFailed(Exception):
    """Provider-side geocoding failure. Downgraded to an unenriched activity."""

    def __init__(self, query: str, reason: str, rejected: bool = False):
        super().__init__(f"Geocoding '{query}' failed: {reason}")
        self.query = query
        self.reason = reason
        self.rejected = rejected
