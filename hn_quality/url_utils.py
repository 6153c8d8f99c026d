from __future__ import annotations

from typing import Optional
from urllib.parse import urlsplit

from url_normalize import url_normalize


def extract_domain(url: Optional[str]) -> str:
    """Hostname of an absolute URL without a leading ``www.``, or "" if there is none."""
    if not url:
        return ""
    raw = urlsplit(url)
    if not raw.scheme or not raw.netloc:
        return ""
    try:
        normalized = url_normalize(url)
    except Exception:
        normalized = url
    host = urlsplit(normalized).hostname or ""
    return host.removeprefix("www.")
