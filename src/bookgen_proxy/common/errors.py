"""Error taxonomy shared by the auth gate, request validation and the forwarder.

Every failure is a ``BookGenError``. ``message`` is what the caller sees in
``{"error": ...}``; ``detail`` is for the log only and may carry upstream
bodies or decoder errors.
"""
from __future__ import annotations


class BookGenError(Exception):
    """Base for all errors surfaced as an HTTP error response."""

    status_code: int = 500
    code: str = "InternalError"
    message: str = "Internal server error"

    def __init__(self, detail: str = "", message: str | None = None) -> None:
        if message is not None:
            self.message = message
        self.detail = detail
        super().__init__(detail or self.message)


# --- auth (client fixes header/token) ---

class AuthError(BookGenError):
    status_code = 401
    code = "AuthError"
    message = "Invalid JWT"


class MissingHeader(AuthError):
    code = "MissingHeader"
    message = "Missing or malformed JWT"


class MalformedHeader(AuthError):
    code = "MalformedHeader"
    message = "Malformed Authorization header"


class InvalidSignatureOrExpired(AuthError):
    code = "InvalidSignatureOrExpired"
    message = "Invalid or expired JWT"


class WrongTokenType(AuthError):
    code = "WrongTokenType"
    message = "Invalid token type"


# --- payload (client fixes request body) ---

class PayloadValidationError(BookGenError):
    status_code = 400
    code = "InvalidBody"
    message = "Invalid request body"


class MissingFields(PayloadValidationError):
    code = "MissingFields"
    message = "Title, description, and chapters are required"


# --- config (operator sets environment) ---

class ConfigError(BookGenError):
    status_code = 500
    code = "ConfigError"
    message = "Server configuration error"


class ServerMisconfigured(ConfigError):
    code = "ServerMisconfigured"


class MissingApiKey(ConfigError):
    code = "MissingApiKey"
    message = "Server configuration error (missing AI API key)"


# --- upstream (remote side; never retried) ---

class UpstreamError(BookGenError):
    status_code = 500
    code = "UpstreamError"
    message = "Failed to generate book"


class UpstreamTimeout(UpstreamError):
    code = "Timeout"
    message = "Failed to generate book: upstream request timed out"


class UpstreamUnavailable(UpstreamError):
    code = "UpstreamUnavailable"
    message = "Failed to generate book: could not reach upstream service"


class UpstreamStatusError(UpstreamError):
    code = "UpstreamStatusError"

    def __init__(self, status: int, body: str, elapsed_ms: int | None = None) -> None:
        self.status = status
        self.body = body
        timing = f" ({elapsed_ms}ms elapsed)" if elapsed_ms is not None else ""
        super().__init__(
            detail=f"upstream returned status {status}{timing}: {body}",
            message=f"Failed to generate book: upstream service returned status {status}",
        )


class MalformedUpstreamResponse(UpstreamError):
    code = "MalformedUpstreamResponse"
    message = "Failed to generate book: malformed upstream response"


class UpstreamIncomplete(UpstreamError):
    code = "UpstreamIncomplete"

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(
            detail=f"generation finished unexpectedly with reason: {reason}",
            message=f"Failed to generate book: generation finished unexpectedly ({reason})",
        )


class EmptyUpstreamResult(UpstreamError):
    code = "EmptyUpstreamResult"
    message = "Failed to generate book: upstream returned empty text"
