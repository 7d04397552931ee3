"""In-memory CT log trust configuration and root-set reconciliation."""

from __future__ import annotations

from typing import Iterable

import structlog

from ..common.errors import TrustConfigError
from . import keys, roots
from .keys import PublicKeyTypes, SigningKey


LOGGER = structlog.get_logger("ctlog_trust.ctlog.config")


class TrustConfig:
    """Identity, backend, signing key and trusted Fulcio roots of one CT log.

    The Fulcio roots are not part of the CT log's own configuration proto, but
    they are mounted next to it from the same secret, so they live here and
    are written out together.
    """

    def __init__(
        self,
        *,
        log_id: int,
        log_prefix: str,
        private_key: object,
        private_key_password: str,
        backend_address: str = "",
        trusted_roots: Iterable[bytes] = (),
    ) -> None:
        if not private_key_password:
            raise TrustConfigError("private key password must not be empty")
        self._log_id = int(log_id)
        self._log_prefix = log_prefix
        self._private_key = SigningKey.wrap(private_key)
        self._private_key_password = private_key_password
        self.backend_address = backend_address
        if isinstance(trusted_roots, (bytes, bytearray, str)):
            raise TypeError("trusted_roots must be an iterable of PEM blobs, not a single blob")
        self._trusted_roots: list[bytes] = []
        for root in trusted_roots:
            if root not in self._trusted_roots:
                self._trusted_roots.append(bytes(root))

    @classmethod
    def new(
        cls,
        *,
        log_id: int,
        log_prefix: str,
        private_key_password: str,
        backend_address: str = "",
        algorithm: keys.KeyAlgorithm = keys.KeyAlgorithm.ECDSA,
    ) -> "TrustConfig":
        """Fresh configuration with a newly generated key and no trusted roots."""

        return cls(
            log_id=log_id,
            log_prefix=log_prefix,
            private_key=keys.generate_signing_key(algorithm),
            private_key_password=private_key_password,
            backend_address=backend_address,
        )

    @property
    def log_id(self) -> int:
        return self._log_id

    @property
    def log_prefix(self) -> str:
        return self._log_prefix

    @property
    def private_key(self) -> SigningKey:
        return self._private_key

    @property
    def private_key_password(self) -> str:
        return self._private_key_password

    @property
    def public_key(self) -> PublicKeyTypes:
        return self._private_key.public_key()

    @property
    def trusted_roots(self) -> tuple[bytes, ...]:
        return tuple(self._trusted_roots)

    def has_root(self, root_pem: bytes) -> bool:
        return root_pem in self._trusted_roots

    def add_root(self, chain_pem: bytes) -> bool:
        """Trust the root of ``chain_pem``. Returns False if it was already trusted."""

        root = roots.extract_root(chain_pem)
        if root in self._trusted_roots:
            LOGGER.info("root_already_trusted", log_prefix=self._log_prefix, **roots.describe_root(root))
            return False
        self._trusted_roots.append(root)
        LOGGER.info("root_added", log_prefix=self._log_prefix, **roots.describe_root(root))
        return True

    def remove_root(self, chain_pem: bytes) -> int:
        """Stop trusting the root of ``chain_pem``. Returns how many entries were dropped."""

        root = roots.extract_root(chain_pem)
        remaining = [existing for existing in self._trusted_roots if existing != root]
        removed = len(self._trusted_roots) - len(remaining)
        self._trusted_roots = remaining
        if removed:
            LOGGER.info("root_removed", log_prefix=self._log_prefix, **roots.describe_root(root))
        else:
            LOGGER.info("root_not_trusted", log_prefix=self._log_prefix, **roots.describe_root(root))
        return removed

    def summary(self) -> dict[str, object]:
        return {
            "log_id": self._log_id,
            "log_prefix": self._log_prefix,
            "backend_address": self.backend_address,
            "key_algorithm": self._private_key.algorithm.value,
            "public_key": keys.public_pem(self._private_key).decode("ascii"),
            "trusted_roots": [roots.describe_root(root) for root in self._trusted_roots],
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TrustConfig):
            return NotImplemented
        return (
            self._log_id == other._log_id
            and self._log_prefix == other._log_prefix
            and self.backend_address == other.backend_address
            and self._private_key_password == other._private_key_password
            and self._private_key == other._private_key
            and set(self._trusted_roots) == set(other._trusted_roots)
        )

    __hash__ = None  # type: ignore[assignment]

    def __str__(self) -> str:
        lines = [
            "PrivateKeyPassword: <redacted>",
            f"LogID: {self._log_id}",
            f"LogPrefix: {self._log_prefix}",
            f"BackendAddress: {self.backend_address}",
        ]
        for root in self._trusted_roots:
            lines.append(f"fulciocert:\n{root.decode('utf-8', errors='replace')}")
        lines.append(f"PublicKey:\n{keys.public_pem(self._private_key).decode('ascii')}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"TrustConfig(log_id={self._log_id}, log_prefix={self._log_prefix!r}, "
            f"backend_address={self.backend_address!r}, roots={len(self._trusted_roots)})"
        )
