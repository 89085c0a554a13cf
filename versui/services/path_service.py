"""Resource path validation for site registry keys.

Every path that becomes a key in the on-chain resource table passes through
``validate_path``. Checks run on the fully percent-decoded, NFC-normalized
string so that an extra layer of encoding cannot hide a forbidden pattern.

The rules are an ordered list of independent predicates; the first one that
matches names the rejection.
"""

from __future__ import annotations

import logging
import re
import unicodedata
from typing import TYPE_CHECKING, Final
from urllib.parse import unquote

from versui.exceptions import DecodeError, ValidationError

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

DEFAULT_MAX_PATH_LENGTH: Final = 10_000
# Each decoding round that changes the string shortens it, so real input
# settles long before this; hitting the cap means deliberate nesting.
MAX_DECODE_ROUNDS: Final = 64

# Codepoints that render like "." and can disguise "..":
# fullwidth full stop, one dot leader, ideographic full stop,
# small full stop, halfwidth ideographic full stop.
DOT_LOOKALIKES: Final = frozenset("．․。﹒｡")

_PERCENT_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")
_WINDOWS_DRIVE = re.compile(r"^[A-Za-z]:")
_DOT_RUN = re.compile(r"\.{3,}")
_SHELL_METACHAR = re.compile(r"[;|`$]|<\(|\$\(")
_DOT_SEGMENT = re.compile(r"(?:^|[/\\])\.\.(?:[/\\]|$)")


def _decode_once(value: str) -> str:
    """Percent-decode one layer, rejecting stray ``%`` and invalid UTF-8."""
    if _PERCENT_ESCAPE.search(value):
        raise ValueError("malformed percent escape")
    return unquote(value, encoding="utf-8", errors="strict")


def decode_fixpoint(path: str) -> str:
    """Percent-decode ``path`` repeatedly until the output stops changing.

    Raises ``DecodeError`` on a malformed escape, on escapes that decode to
    invalid UTF-8, or when the string is still changing after
    ``MAX_DECODE_ROUNDS`` rounds.
    """
    current = path
    for _ in range(MAX_DECODE_ROUNDS):
        try:
            decoded = _decode_once(current)
        except ValueError as exc:
            raise DecodeError(path, str(exc)) from exc
        if decoded == current:
            return decoded
        current = decoded
    raise DecodeError(path, f"still changing after {MAX_DECODE_ROUNDS} decoding rounds")


def has_null_byte(value: str) -> bool:
    return "\x00" in value


def has_dot_lookalike(value: str) -> bool:
    return any(ch in DOT_LOOKALIKES for ch in value)


def is_windows_path(value: str) -> bool:
    """Drive-letter prefixes and any backslash, leading (UNC) or embedded."""
    return bool(_WINDOWS_DRIVE.match(value)) or "\\" in value


def has_dot_run(value: str) -> bool:
    return bool(_DOT_RUN.search(value))


def has_shell_metachar(value: str) -> bool:
    """Match ``; | ` $`` and the ``<(`` / ``$(`` substitution openers.

    Web-standard characters such as ``? & # [ ] { }`` are allowed.
    """
    return bool(_SHELL_METACHAR.search(value))


def has_dot_segment(value: str) -> bool:
    """Match ``..`` as a whole path segment; ``file..txt`` is fine."""
    return bool(_DOT_SEGMENT.search(value))


PATH_RULES: Final[tuple[tuple[str, Callable[[str], bool]], ...]] = (
    ("null_byte", has_null_byte),
    ("dot_lookalike", has_dot_lookalike),
    ("windows_path", is_windows_path),
    ("dot_run", has_dot_run),
    ("shell_metachar", has_shell_metachar),
    ("dot_segment", has_dot_segment),
)


def validate_path(path: str, max_len: int = DEFAULT_MAX_PATH_LENGTH) -> str:
    """Validate a resource path and return its decoded, NFC-normalized form.

    Raises ``ValidationError`` (or its ``DecodeError`` subclass) naming the
    first rule the path violates.
    """
    if len(path) > max_len:
        raise ValidationError(path, "too_long")

    normalized = unicodedata.normalize("NFC", decode_fixpoint(path))

    for rule, violates in PATH_RULES:
        if violates(normalized):
            logger.debug("Rejected resource path %r (rule %s)", path, rule)
            raise ValidationError(path, rule)
    return normalized


def validate_resource_key(path: str, max_len: int = DEFAULT_MAX_PATH_LENGTH) -> str:
    """Validate a path that is stored as-is, such as a scanned file or manifest key.

    The path must already be in its decoded, NFC-normalized form; otherwise
    it is rejected with rule ``not_canonical``.
    """
    normalized = validate_path(path, max_len)
    if normalized != path:
        logger.debug("Rejected resource path %r (rule not_canonical)", path)
        raise ValidationError(path, "not_canonical")
    return path


def is_valid(path: str, max_len: int = DEFAULT_MAX_PATH_LENGTH) -> bool:
    """Return True when ``path`` is safe to use as a resource key."""
    try:
        validate_path(path, max_len)
    except ValidationError:
        return False
    return True
