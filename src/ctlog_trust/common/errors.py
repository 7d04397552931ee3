"""Error taxonomy for trust configuration handling."""

from __future__ import annotations

from typing import Optional


class TrustConfigError(RuntimeError):
    """Base class for every failure raised while handling CT log trust configuration."""


class MissingFieldError(TrustConfigError):
    """Raised when a required blob is absent from the blob map."""

    def __init__(self, field: str) -> None:
        super().__init__(f"missing entry for {field}")
        self.field = field


class SchemaCardinalityError(TrustConfigError):
    """Raised when the protocol config holds the wrong number of log or backend entries."""

    def __init__(self, section: str, got: int, want: int = 1) -> None:
        super().__init__(f"unexpected number of {section}, want {want} got {got}")
        self.section = section
        self.got = got
        self.want = want


class MalformedConfigError(TrustConfigError):
    """Raised when the protocol config blob cannot be parsed."""


class DecryptionError(TrustConfigError):
    """Raised when an encrypted PEM block cannot be decrypted with the given password."""


class KeyFormatError(TrustConfigError):
    """Raised when key material matches none of the supported encodings."""


class NotASignerError(TrustConfigError):
    """Raised when key material cannot derive a public key for signing."""


class EmptyChainError(TrustConfigError):
    """Raised when no certificates could be read from a presented chain."""


class MalformedPEMError(TrustConfigError):
    """Raised when a blob is not valid PEM."""

    def __init__(self, message: str, *, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.field = field


class BlobStoreError(TrustConfigError):
    """Raised when the blob store cannot be read or written."""
