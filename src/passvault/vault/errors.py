"""
Error types raised by the vault engine.

Every error surfaced to the command line derives from PassvaultError so the
CLI boundary can print it and exit non-zero.
"""
from enum import Enum


class PassvaultError(Exception):
    """Base class for all expected failures."""


class CryptoError(PassvaultError):
    """Bad key or IV, corrupt ciphertext, or an unsupported algorithm."""


class VaultErrorKind(str, Enum):
    UNREACHABLE = "unreachable"
    NOT_FOUND = "not found"
    SCHEMA_MISMATCH = "schema mismatch"
    PARTIAL_WRITE = "partial write"
    UNSUPPORTED = "unsupported"


class VaultError(PassvaultError):
    """A storage backend failed or rejected an operation."""

    def __init__(self, kind: VaultErrorKind, detail: str = ""):
        self.kind = kind
        self.detail = detail
        super().__init__(f"{kind.value}: {detail}" if detail else kind.value)


class InputError(PassvaultError):
    """Invalid selection, index or confirmation typed by the user."""


class InvalidInputError(InputError):
    """Empty or malformed input handed to a core operation."""


class KeychainError(PassvaultError):
    """The OS secret cache could not be used."""


class CsvError(PassvaultError):
    """A CSV row or header could not be parsed."""

    def __init__(self, msg: str, line: int | None = None):
        self.line = line
        super().__init__(f"line {line}: {msg}" if line is not None else msg)
