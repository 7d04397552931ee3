"""Root certificate extraction from Fulcio certificate chains."""

from __future__ import annotations

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization

from ..common.errors import EmptyChainError, MalformedPEMError


_CERTIFICATE_MARKER = b"-----BEGIN CERTIFICATE-----"


def split_chain(pem_chain: bytes) -> list[x509.Certificate]:
    """Parse every certificate in a concatenated PEM chain, leaf first."""

    if _CERTIFICATE_MARKER not in pem_chain:
        raise EmptyChainError("no certificates found in the presented chain")
    try:
        return x509.load_pem_x509_certificates(pem_chain)
    except ValueError as exc:
        raise MalformedPEMError(f"unable to unmarshal certificate chain: {exc}") from exc


def extract_root(pem_chain: bytes) -> bytes:
    """Return the trailing (root) certificate of ``pem_chain`` as standalone PEM."""

    certificates = split_chain(pem_chain)
    return certificates[-1].public_bytes(serialization.Encoding.PEM)


def describe_root(root_pem: bytes) -> dict[str, str]:
    """Subject and SHA-256 fingerprint of a root, for log events."""

    try:
        certificate = x509.load_pem_x509_certificate(root_pem)
    except ValueError:
        return {"subject": "<unparseable>", "fingerprint": ""}
    return {
        "subject": certificate.subject.rfc4514_string(),
        "fingerprint": certificate.fingerprint(hashes.SHA256()).hex(),
    }
