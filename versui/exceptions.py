"""Deploy-core exception types.

Convention:
- Every error raised by the deploy core derives from ``VersuiError`` so the
  CLI can render it as a one-line ``Error: ...`` message and exit non-zero.
- Each error carries the structured fields the caller needs to act on it
  (the failed rule, the failed batch index, the offending value), not just
  a message string.
- None of these are retried internally. Only the ledger submission step may
  be retried, and only by the caller.
"""

from __future__ import annotations


class VersuiError(Exception):
    """Base class for all deploy-core errors."""


class ValidationError(VersuiError):
    """Raised when a resource path is rejected by the path validator.

    ``rule`` names the predicate that failed (e.g. ``"dot_segment"``), so the
    caller can render an actionable message. Paths are never auto-corrected.
    """

    def __init__(self, path: str, rule: str) -> None:
        self.path = path
        self.rule = rule
        super().__init__(f"Invalid resource path {path!r}: rejected by rule '{rule}'")


class DecodeError(ValidationError):
    """Raised for malformed or non-terminating percent-encoding."""

    def __init__(self, path: str, detail: str = "") -> None:
        self.detail = detail
        super().__init__(path, "bad_encoding")
        if detail:
            self.args = (f"{self.args[0]} ({detail})",)


class ManifestCorruptError(VersuiError):
    """Raised when a manifest file is unreadable or misses a required field.

    Fatal: the deploy aborts before any mutation is submitted.
    """

    def __init__(self, path: str, detail: str) -> None:
        self.path = path
        self.detail = detail
        super().__init__(f"Manifest {path} is corrupt: {detail}")


class BatchSubmissionError(VersuiError):
    """Raised when the ledger rejects a mutation batch.

    ``failed_batch_index`` is the zero-based index of the rejected batch in
    planner order and ``committed_ops`` the number of path operations that
    were committed by earlier batches. Earlier batches are not rolled back.
    """

    def __init__(self, failed_batch_index: int, committed_ops: int, reason: str) -> None:
        self.failed_batch_index = failed_batch_index
        self.committed_ops = committed_ops
        self.reason = reason
        super().__init__(
            f"Batch {failed_batch_index} failed after {committed_ops} committed "
            f"operation(s): {reason}"
        )


class CodecRangeError(VersuiError):
    """Raised when an identifier is outside [0, 2^256 - 1] or uses a bad alphabet."""

    def __init__(self, value: str, reason: str) -> None:
        self.value = value
        self.reason = reason
        super().__init__(f"Cannot convert identifier {value!r}: {reason}")


class BlobStoreError(VersuiError):
    """Raised when the blob publisher or aggregator returns an unusable response."""
