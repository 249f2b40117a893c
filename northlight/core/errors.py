"""Error taxonomy — every failure the client can surface to a caller."""

from __future__ import annotations

from typing import Optional


class NorthlightError(Exception):
    """Base class for all client errors."""

    message = "Unknown Northlight error."

    def __str__(self) -> str:
        return self.message


class InvalidAPIKey(NorthlightError):
    message = (
        "Invalid or missing API key. "
        "Please configure Northlight with a valid API key."
    )


class NetworkError(NorthlightError):
    """Transport failed before an HTTP status was obtained."""

    def __init__(self, cause: BaseException):
        super().__init__(cause)
        self.cause = cause

    def __str__(self) -> str:
        return f"Network error: {self.cause}"


class RateLimitExceeded(NorthlightError):
    message = "Rate limit exceeded. Please try again later."


class FeedbackLimitReached(NorthlightError):
    message = "Feedback limit reached for free tier (maximum 5 items)."


class InvalidInput(NorthlightError):
    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail

    def __str__(self) -> str:
        return f"Invalid input: {self.detail}"


class ServerError(NorthlightError):
    def __init__(self, status_code: int, detail: Optional[str] = None):
        super().__init__(status_code, detail)
        self.status_code = status_code
        self.detail = detail

    def __str__(self) -> str:
        if self.detail:
            return self.detail
        return f"Server error with status code: {self.status_code}"


class DecodingError(NorthlightError):
    def __init__(self, cause: BaseException):
        super().__init__(cause)
        self.cause = cause

    def __str__(self) -> str:
        return f"Failed to decode response: {self.cause}"


class MissingUserIdentifier(NorthlightError):
    message = "User identifier is required for this operation."


class AlreadyVoted(NorthlightError):
    """Raised locally by the vote ledger; no request is sent."""

    def __init__(self, feedback_id: str):
        super().__init__(feedback_id)
        self.feedback_id = feedback_id

    def __str__(self) -> str:
        return "You have already voted for this feature request."
