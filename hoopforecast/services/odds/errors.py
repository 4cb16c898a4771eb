"""
Errors raised by odds provider adapters.
"""
from typing import Dict, Optional

# Response bodies are cut to this many characters before being attached
MAX_BODY_CHARS = 500


class ProviderError(Exception):
    """
    An upstream odds provider could not be used.

    Raised when the HTTP call fails (after retries on 403/429), times out, or
    the provider's top-level response shape is not recognised. Carries the
    HTTP status and a truncated response body for diagnostics.

    "Player has no listed line" is not an error; see ``NotFound``.
    """

    def __init__(
        self,
        provider: str,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ):
        self.provider = provider
        self.message = message
        self.status_code = status_code
        self.body = truncate_body(body)
        super().__init__(self._describe())

    def _describe(self) -> str:
        text = f"[{self.provider}] {self.message}"
        if self.status_code is not None:
            text += f" (HTTP {self.status_code})"
        return text

    def to_dict(self) -> Dict:
        return {
            "provider": self.provider,
            "message": self.message,
            "status_code": self.status_code,
            "body": self.body,
        }


def truncate_body(body: Optional[str], limit: int = MAX_BODY_CHARS) -> Optional[str]:
    """Cut a response body down to ``limit`` characters, marking the cut."""
    if body is None:
        return None
    if len(body) <= limit:
        return body
    return body[:limit] + "..."
