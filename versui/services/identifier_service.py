"""Base-36 codec for 256-bit object identifiers.

Sui object IDs are 256-bit values written as 64 hex digits, which exceeds
the 63-character DNS label limit. Base-36 (``0-9a-z``) brings them to at
most 50 characters while staying DNS-safe, so the site ID can serve as its
public subdomain.
"""

from __future__ import annotations

import re
import string
from typing import Final

from versui.exceptions import CodecRangeError

BASE36_ALPHABET: Final = string.digits + string.ascii_lowercase
MAX_IDENTIFIER: Final = (1 << 256) - 1
# 36**63 > 2**256, so a 256-bit value never needs more than 63 digits.
MAX_BASE36_LENGTH: Final = 63
HEX_DIGITS: Final = 64

_HEX_BODY = re.compile(r"[0-9a-fA-F]+")
_BASE36_BODY = re.compile(r"[0-9a-z]+")
_OBJECT_ID = re.compile(r"0x[0-9a-fA-F]{64}")


def is_valid_object_id(value: str) -> bool:
    """Return True for a ``0x``-prefixed, 64-hex-digit object ID."""
    return bool(_OBJECT_ID.fullmatch(value))


def _parse_hex(value: str) -> int:
    body = value[2:] if value[:2] in ("0x", "0X") else value
    if not body or not _HEX_BODY.fullmatch(body):
        raise CodecRangeError(value, "not a hexadecimal integer")
    number = int(body, 16)
    if number > MAX_IDENTIFIER:
        raise CodecRangeError(value, "value exceeds 2^256 - 1")
    return number


def canonical_hex(value: str) -> str:
    """Return the ``0x`` + 64 lowercase hex digit form of ``value``."""
    return f"0x{_parse_hex(value):0{HEX_DIGITS}x}"


def encode_base36(object_id: str) -> str:
    """Encode a 256-bit hex value (with or without ``0x``) as base-36.

    Leading zero digits are stripped, so ``0x...01`` encodes as ``"1"``;
    zero encodes as ``"0"``.
    """
    number = _parse_hex(object_id)
    if number == 0:
        return "0"

    digits: list[str] = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(BASE36_ALPHABET[remainder])
    return "".join(reversed(digits))


def decode_base36(subdomain: str) -> str:
    """Decode a base-36 string to a ``0x``-prefixed 64-digit lowercase hex ID."""
    if not subdomain or not _BASE36_BODY.fullmatch(subdomain):
        raise CodecRangeError(subdomain, "expected characters from [0-9a-z]")
    if len(subdomain) > MAX_BASE36_LENGTH:
        raise CodecRangeError(subdomain, f"longer than {MAX_BASE36_LENGTH} characters")

    number = 0
    for char in subdomain:
        number = number * 36 + BASE36_ALPHABET.index(char)
    if number > MAX_IDENTIFIER:
        raise CodecRangeError(subdomain, "value exceeds 2^256 - 1")
    return f"0x{number:0{HEX_DIGITS}x}"


def site_address(site_id: str, domain: str) -> str:
    """Return the public host name ``{base36(site_id)}.{domain}``."""
    return f"{encode_base36(site_id)}.{domain.strip('.').lower()}"
