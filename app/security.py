"""Security-related helpers (webhook signatures).

GitHub signs each delivery with a keyed hash of the raw request body and sends
it as `<algorithm>=<hex digest>` (for example `X-Hub-Signature-256: sha256=...`).
"""

from __future__ import annotations

import hashlib
import hmac
from dataclasses import dataclass


@dataclass(frozen=True)
class SignatureHeader:
    algorithm: str
    hexdigest: str


def parse_signature_header(header_value: str | None) -> SignatureHeader | None:
    """Split a `<algorithm>=<hex digest>` header as sent; None when malformed."""
    if not header_value:
        return None
    algorithm, sep, digest = header_value.partition("=")
    if sep != "=" or not algorithm or not digest:
        return None
    return SignatureHeader(algorithm=algorithm, hexdigest=digest)


def ensure_algorithm(algorithm: str) -> str:
    """Normalize an algorithm name, rejecting ones hashlib cannot provide."""
    name = (algorithm or "").lower()
    if name not in hashlib.algorithms_available:
        raise ValueError(f"Unsupported webhook signature algorithm: {algorithm!r}")
    return name


def compute_signature(secret: str, payload: bytes, algorithm: str = "sha256") -> str:
    """Header value GitHub would send for `payload`."""
    digest = hmac.new(secret.encode("utf-8"), payload, algorithm).hexdigest()
    return f"{algorithm}={digest}"


def signatures_match(expected: str, provided: str) -> bool:
    """Constant-time comparison; unequal lengths fail before comparing bytes."""
    expected_bytes = expected.encode("utf-8")
    provided_bytes = provided.encode("utf-8")
    if len(expected_bytes) != len(provided_bytes):
        return False
    return hmac.compare_digest(expected_bytes, provided_bytes)
