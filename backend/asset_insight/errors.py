# backend/asset_insight/errors.py

from typing import Optional


class AssetInsightError(Exception):
    """Base error for everything raised by the analysis workflow."""

    kind = "error"


class EncodingError(AssetInsightError):
    """An uploaded asset could not be read or is not an image."""

    kind = "encoding"


class RemoteServiceError(AssetInsightError):
    """Gemini could not be reached or refused the request."""

    kind = "remote_service"

    def __init__(self, message: str, category: str = "unknown"):
        super().__init__(message)
        self.category = category


class ResponseFormatError(AssetInsightError):
    """Gemini answered, but not with JSON matching the declared schema."""

    kind = "response_format"

    def __init__(self, message: str, raw_text: Optional[str] = None):
        super().__init__(message)
        self.raw_text = raw_text


def categorize_remote_error(error: BaseException) -> str:
    """Map a transport/SDK exception onto a short category label."""
    if isinstance(error, TimeoutError):
        return "timeout"

    s = str(error).lower()
    if "timeout" in s or "timed out" in s or "deadline" in s:
        return "timeout"
    if "429" in s or "quota" in s or "resource_exhausted" in s:
        return "quota"
    if "401" in s or "api key" in s or "api_key" in s or "unauthenticated" in s:
        return "auth"
    if "403" in s or "permission" in s:
        return "permission"
    if "connect" in s or "network" in s or "unreachable" in s or "refused" in s:
        return "network"
    return "unknown"
