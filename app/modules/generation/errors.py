"""Typed failures of the generation pipeline.

Every error is terminal for the request. The HTTP layer renders them with
``to_payload`` and ``status_code``; nothing inside the pipeline retries.
"""

from __future__ import annotations

from typing import Any, Optional


class GenerationError(Exception):
    code: str = "generation_failed"
    status_code: int = 500
    default_message: str = "Failed to generate questions. Please try again."

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.message, "code": self.code}


class Unauthorized(GenerationError):
    code = "unauthorized"
    status_code = 401
    default_message = "Unauthorized"


class QuotaExceeded(GenerationError):
    code = "quota_exceeded"
    status_code = 403
    default_message = "Free trial ended. Please subscribe to continue studying."
    requires_subscription = True

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload["requiresSubscription"] = self.requires_subscription
        return payload


class InvalidArgument(GenerationError):
    code = "invalid_argument"
    status_code = 400
    default_message = "Invalid request"


class TooManyInputs(GenerationError):
    code = "too_many_inputs"
    status_code = 400

    def __init__(self, count: int, limit: int) -> None:
        self.count = count
        self.limit = limit
        super().__init__(
            f"Too many images: {count} provided, at most {limit} allowed. "
            "The limit is shared between uploaded images and rendered PDF pages."
        )


class UpstreamUnavailable(GenerationError):
    code = "upstream_unavailable"
    status_code = 500
    default_message = "Server configuration error"


class UpstreamAuthError(GenerationError):
    code = "upstream_auth_error"
    status_code = 401
    default_message = "Invalid API key"


class UpstreamRateLimited(GenerationError):
    code = "upstream_rate_limited"
    status_code = 429
    default_message = "Rate limit exceeded. Please try again later."


class UpstreamEmptyResponse(GenerationError):
    code = "upstream_empty_response"
    status_code = 500
    default_message = "No response from the model"


class UpstreamTimeout(GenerationError):
    code = "upstream_timeout"
    status_code = 504
    default_message = "Generation took too long. Try requesting fewer items."


class UpstreamError(GenerationError):
    code = "upstream_error"
    status_code = 500


class TruncatedGeneration(GenerationError):
    code = "truncated_generation"
    status_code = 413

    def __init__(self, received: int, requested: int) -> None:
        self.received = received
        self.requested = requested
        super().__init__(
            f"Response was cut off after {received} of {requested} items. "
            "Try requesting fewer items."
        )

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload["received"] = self.received
        payload["requested"] = self.requested
        return payload


class DegenerateGeneration(GenerationError):
    code = "degenerate_generation"
    status_code = 422
    default_message = (
        "The content could not be processed meaningfully. "
        "Try a clearer image or fewer items."
    )


class EmptyGeneration(GenerationError):
    code = "empty_generation"
    status_code = 500
    default_message = "The model returned no items"

    def to_payload(self) -> dict[str, Any]:
        return {"error": GenerationError.default_message, "code": self.code}


class MalformedItem(GenerationError):
    code = "malformed_item"
    status_code = 500

    def __init__(
        self,
        position: Optional[int] = None,
        field: Optional[str] = None,
        detail: Optional[str] = None,
    ) -> None:
        self.position = position
        self.field = field
        if position is None:
            message = detail or "Invalid response format from the model"
        else:
            message = f"Item {position}: invalid or missing field '{field}'"
            if detail:
                message = f"{message} ({detail})"
        super().__init__(message)

    def to_payload(self) -> dict[str, Any]:
        # Position and field go to the log, not to the user.
        return {"error": GenerationError.default_message, "code": self.code}


__all__ = [
    "GenerationError",
    "Unauthorized",
    "QuotaExceeded",
    "InvalidArgument",
    "TooManyInputs",
    "UpstreamUnavailable",
    "UpstreamAuthError",
    "UpstreamRateLimited",
    "UpstreamEmptyResponse",
    "UpstreamTimeout",
    "UpstreamError",
    "TruncatedGeneration",
    "DegenerateGeneration",
    "EmptyGeneration",
    "MalformedItem",
]
