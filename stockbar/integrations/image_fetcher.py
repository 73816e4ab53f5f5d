from __future__ import annotations

from typing import Any, Literal, Optional

import requests
from pydantic import BaseModel

DEFAULT_TIMEOUT_SEC = 10.0
# google's s2 favicon service answers unknown domains with a tiny globe icon
DEFAULT_MIN_BYTES = 500

_IMAGE_HEADERS = {
    "User-Agent": "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36",
    "Accept": "image/*",
}


class ImageFetchResult(BaseModel):
    url: str
    outcome: Literal["ok", "invalid", "failed"]
    status_code: int | None = None
    content: bytes = b""
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.outcome == "ok"


class RemoteImageFetcher:
    """Single GET per candidate URL. Retrying other sources is the caller's job."""

    def __init__(
        self,
        session: Optional[Any] = None,
        *,
        timeout_sec: float = DEFAULT_TIMEOUT_SEC,
        min_bytes: int = DEFAULT_MIN_BYTES,
    ) -> None:
        self.session = session or requests.Session()
        self.timeout_sec = timeout_sec
        self.min_bytes = min_bytes

    def get(self, url: str, timeout_sec: float | None = None) -> ImageFetchResult:
        try:
            response = self.session.get(
                url,
                headers=_IMAGE_HEADERS,
                timeout=self.timeout_sec if timeout_sec is None else timeout_sec,
            )
        except requests.RequestException as exc:
            return ImageFetchResult(url=url, outcome="failed", error=str(exc))

        status_code = int(response.status_code)
        if status_code != 200:
            return ImageFetchResult(
                url=url,
                outcome="failed",
                status_code=status_code,
                error=f"http_status_{status_code}",
            )

        content = response.content or b""
        if len(content) <= self.min_bytes:
            return ImageFetchResult(
                url=url,
                outcome="invalid",
                status_code=status_code,
                content=content,
                error=f"payload_too_small bytes={len(content)}",
            )

        return ImageFetchResult(url=url, outcome="ok", status_code=status_code, content=content)

    def close(self) -> None:
        close = getattr(self.session, "close", None)
        if callable(close):
            close()
