"""Timestamp and base64url helpers shared by the builder and the verifier."""
from __future__ import annotations

import base64
import binascii
import datetime
import time

TIMESTAMP_FORMAT = "%Y.%m.%d %H:%M:%S %z"


def url_safe(text: str) -> str:
    """Turn standard base64 into the provider's URL-safe form.

    Only the first ``=`` is removed; secrets ending in ``==`` keep one.
    """
    return text.strip().replace("+", "-").replace("/", "_").replace("=", "", 1)


def get_timestamp(value: int | float | None = None, tz: datetime.tzinfo | None = None) -> str:
    """Format ``value`` (epoch milliseconds, default now) as ``YYYY.MM.DD HH:MM:SS +HHMM``.

    ``tz`` defaults to the local zone of the process.
    """
    ms = value if value is not None else time.time() * 1000
    moment = datetime.datetime.fromtimestamp(ms / 1000, tz=datetime.timezone.utc)
    moment = moment.astimezone(tz) if tz is not None else moment.astimezone()
    return moment.strftime(TIMESTAMP_FORMAT)


def b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def b64url_decode(segment: str) -> bytes:
    s = segment.strip()
    if any(c in s for c in "+/"):
        raise ValueError("not base64url")
    s = s.rstrip("=")
    if len(s) % 4 == 1:
        raise ValueError("invalid base64url length")
    try:
        return base64.b64decode(s + "=" * (-len(s) % 4), altchars=b"-_", validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError("invalid base64url") from e


__all__ = ["url_safe", "get_timestamp", "b64url_encode", "b64url_decode", "TIMESTAMP_FORMAT"]
