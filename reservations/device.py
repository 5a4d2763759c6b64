"""Device fingerprint derivation from request metadata.

The fingerprint is a secondary booking key: one physical device may hold at
most one overlapping booking, whichever member account it is signed in as.
"""

from __future__ import annotations

import hashlib
from typing import Mapping, Optional

FINGERPRINT_HEADERS = ("user-agent", "accept-language", "accept-encoding")


def _header(headers: Mapping[str, str], name: str) -> str:
    for key, value in headers.items():
        if key.lower() == name:
            return (value or "").strip()
    return ""


def has_valid_fingerprint(
    headers: Mapping[str, str],
    remote_addr: Optional[str] = None,
) -> bool:
    """Return True when the request carries enough signal to fingerprint."""

    return bool(_header(headers, "user-agent") or (remote_addr or "").strip())


def derive_device_fingerprint(
    headers: Mapping[str, str],
    remote_addr: Optional[str] = None,
) -> str:
    """Hash the request's ambient signals into a stable hex identifier.

    Header lookups are case-insensitive. The same headers and address always
    produce the same fingerprint.
    """

    components = [_header(headers, name) for name in FINGERPRINT_HEADERS]
    components.append((remote_addr or "").strip())
    components.append(_header(headers, "x-forwarded-for"))

    fingerprint = "|".join(components)
    return hashlib.sha256(fingerprint.encode("utf-8")).hexdigest()
