"""Time-based one-time passwords (RFC 6238)."""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import struct
import time
from collections.abc import Callable

from autologin.errors import ConfigurationError

OtpGenerator = Callable[[str], str]

TIME_STEP_SECONDS = 30
DIGITS = 6


def _decode_seed(seed: str) -> bytes:
    """Decode a base32 seed, tolerating spaces, dashes, lowercase and missing padding."""
    normalized = seed.upper().replace(" ", "").replace("-", "")
    padding = -len(normalized) % 8
    try:
        return base64.b32decode(normalized + "=" * padding)
    except (binascii.Error, ValueError) as e:
        raise ConfigurationError(f"OTP seed is not valid base32: {e}") from e


def generate_totp_code(seed: str, at: float | None = None) -> str:
    """Generate a TOTP code from a base32 seed.

    30 second time step, 6 digits, HMAC-SHA1.

    Args:
        seed: Base32 encoded shared secret.
        at: POSIX time to generate for. Defaults to now.

    Raises:
        ConfigurationError: If the seed cannot be decoded.
    """
    key = _decode_seed(seed)
    counter = int(time.time() if at is None else at) // TIME_STEP_SECONDS

    digest = hmac.new(key, struct.pack(">Q", counter), hashlib.sha1).digest()
    offset = digest[-1] & 0x0F
    code_int = struct.unpack(">I", digest[offset : offset + 4])[0] & 0x7FFFFFFF

    return f"{code_int % 10**DIGITS:0{DIGITS}d}"
