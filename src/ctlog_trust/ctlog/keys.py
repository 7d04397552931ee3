"""Signing key handling for the CT log private/public key blobs.

The CT log server reads its private key from a PEM block protected with the
legacy OpenSSL scheme (``Proc-Type: 4,ENCRYPTED`` plus ``DEK-Info``), so that
is what we read and write here. Decrypted payloads are tried against an
ordered list of encodings: PKCS#8 first, then the two legacy
algorithm-specific formats older provisioning runs produced.
"""

from __future__ import annotations

import binascii
import enum
import re
from dataclasses import dataclass
from typing import Union

from Crypto.Cipher import AES
from Crypto.Hash import MD5
from Crypto.IO import PEM
from Crypto.Random import get_random_bytes
from Crypto.Util.Padding import pad
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, rsa

from ..common.errors import DecryptionError, KeyFormatError, MalformedPEMError, NotASignerError


PrivateKeyTypes = Union[rsa.RSAPrivateKey, ec.EllipticCurvePrivateKey, ed25519.Ed25519PrivateKey]
PublicKeyTypes = Union[rsa.RSAPublicKey, ec.EllipticCurvePublicKey, ed25519.Ed25519PublicKey]

PRIVATE_KEY_PEM_LABEL = "PRIVATE KEY"
PUBLIC_KEY_PEM_LABEL = "PUBLIC KEY"
PEM_CIPHER = "AES-256-CBC"

_PEM_BLOCK = re.compile(rb"-----BEGIN ([A-Z0-9 ]+)-----.*?-----END \1-----", re.DOTALL)
_ENCRYPTED_HEADER = re.compile(r"Proc-Type:\s*4,ENCRYPTED")


class KeyAlgorithm(str, enum.Enum):
    RSA = "rsa"
    ECDSA = "ecdsa"
    ED25519 = "ed25519"


_KEY_TYPES: tuple[tuple[KeyAlgorithm, type, type], ...] = (
    (KeyAlgorithm.RSA, rsa.RSAPrivateKey, rsa.RSAPublicKey),
    (KeyAlgorithm.ECDSA, ec.EllipticCurvePrivateKey, ec.EllipticCurvePublicKey),
    (KeyAlgorithm.ED25519, ed25519.Ed25519PrivateKey, ed25519.Ed25519PublicKey),
)


@dataclass(frozen=True, eq=False)
class SigningKey:
    """A private key from the closed set of algorithms the CT log can sign with."""

    algorithm: KeyAlgorithm
    key: PrivateKeyTypes

    @classmethod
    def wrap(cls, key: object) -> "SigningKey":
        if isinstance(key, SigningKey):
            return key
        for algorithm, private_type, _ in _KEY_TYPES:
            if isinstance(key, private_type):
                return cls(algorithm, key)  # type: ignore[arg-type]
        raise NotASignerError(f"{type(key).__name__} is not a supported signing key")

    def public_key(self) -> PublicKeyTypes:
        return self.key.public_key()

    def public_der(self) -> bytes:
        return self.public_key().public_bytes(
            encoding=serialization.Encoding.DER,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )

    def pkcs8_der(self) -> bytes:
        return self.key.private_bytes(
            encoding=serialization.Encoding.DER,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )

    def matches_public(self, public: PublicKeyTypes) -> bool:
        return self.public_der() == _spki_der(public)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SigningKey):
            return NotImplemented
        return self.algorithm is other.algorithm and self.pkcs8_der() == other.pkcs8_der()

    def __hash__(self) -> int:
        return hash((self.algorithm, self.pkcs8_der()))

    def __repr__(self) -> str:
        return f"SigningKey(algorithm={self.algorithm.value})"


def algorithm_of(public: object) -> KeyAlgorithm:
    for algorithm, _, public_type in _KEY_TYPES:
        if isinstance(public, public_type):
            return algorithm
    raise KeyFormatError(f"{type(public).__name__} is not a supported public key")


def generate_signing_key(algorithm: KeyAlgorithm = KeyAlgorithm.ECDSA, *, rsa_bits: int = 4096) -> SigningKey:
    if algorithm is KeyAlgorithm.RSA:
        return SigningKey(algorithm, rsa.generate_private_key(public_exponent=65537, key_size=rsa_bits))
    if algorithm is KeyAlgorithm.ECDSA:
        return SigningKey(algorithm, ec.generate_private_key(ec.SECP256R1()))
    if algorithm is KeyAlgorithm.ED25519:
        return SigningKey(algorithm, ed25519.Ed25519PrivateKey.generate())
    raise ValueError(f"unknown key algorithm {algorithm!r}")


@dataclass(frozen=True)
class KeyDecoder:
    """Parses decrypted key bytes in exactly one encoding, selected by PEM label."""

    name: str
    label: str

    def decode(self, der: bytes) -> object:
        armored = PEM.encode(der, self.label).encode("ascii")
        return serialization.load_pem_private_key(armored, password=None)


PRIVATE_KEY_DECODERS: tuple[KeyDecoder, ...] = (
    KeyDecoder("pkcs8", "PRIVATE KEY"),
    KeyDecoder("pkcs1", "RSA PRIVATE KEY"),
    KeyDecoder("sec1", "EC PRIVATE KEY"),
)


def decode_private_der(der: bytes, decoders: tuple[KeyDecoder, ...] = PRIVATE_KEY_DECODERS) -> SigningKey:
    failures: list[str] = []
    for decoder in decoders:
        try:
            key = decoder.decode(der)
        except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
            failures.append(f"{decoder.name}: {exc}")
            continue
        return SigningKey.wrap(key)
    raise KeyFormatError("failed to parse private key (" + "; ".join(failures) + ")")


def decrypt(encrypted_pem: bytes, password: str) -> tuple[SigningKey, PublicKeyTypes]:
    """Decrypt a legacy-encrypted private key PEM and return the key and its public half."""

    block = _first_block(encrypted_pem, "private")
    if not _ENCRYPTED_HEADER.search(block):
        raise DecryptionError("private key PEM block is not encrypted")
    if not password:
        raise DecryptionError("no password available for the encrypted private key")
    try:
        der, _, _ = PEM.decode(block, password.encode("utf-8"))
    except (ValueError, KeyError, IndexError) as exc:
        raise DecryptionError(f"failed to decrypt private key: {exc}") from exc
    key = decode_private_der(der)
    return key, key.public_key()


def encrypt(key: SigningKey, password: str) -> bytes:
    """Serialize ``key`` as PKCS#8 and seal it the way ``x509.EncryptPEMBlock`` does."""

    return seal_pem(SigningKey.wrap(key).pkcs8_der(), PRIVATE_KEY_PEM_LABEL, password)


def seal_pem(der: bytes, label: str, password: str) -> bytes:
    if not password:
        raise ValueError("refusing to encrypt a private key with an empty password")
    iv = get_random_bytes(AES.block_size)
    cipher_key = _evp_bytes_to_key(password.encode("utf-8"), iv[:8], 32)
    ciphertext = AES.new(cipher_key, AES.MODE_CBC, iv).encrypt(pad(der, AES.block_size))
    lines = [
        f"-----BEGIN {label}-----",
        "Proc-Type: 4,ENCRYPTED",
        f"DEK-Info: {PEM_CIPHER},{iv.hex()}",
        "",
    ]
    lines.extend(
        binascii.b2a_base64(ciphertext[offset:offset + 48], newline=False).decode("ascii")
        for offset in range(0, len(ciphertext), 48)
    )
    lines.append(f"-----END {label}-----")
    return ("\n".join(lines) + "\n").encode("ascii")


def public_pem(key: object) -> bytes:
    """PKIX PEM encoding of the public half of ``key``."""

    public = SigningKey.wrap(key).public_key()
    return public.public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )


def load_public_pem(data: bytes) -> PublicKeyTypes:
    """Parse a PKIX (``PUBLIC KEY``) or PKCS#1 (``RSA PUBLIC KEY``) public key PEM."""

    block = _first_block(data, "public")
    try:
        public = serialization.load_pem_public_key(block.encode("ascii"))
    except (ValueError, UnsupportedAlgorithm) as exc:
        raise KeyFormatError(f"failed to parse public key from PEM data: {exc}") from exc
    algorithm_of(public)
    return public  # type: ignore[return-value]


def _spki_der(public: PublicKeyTypes) -> bytes:
    return public.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )


def _first_block(data: bytes, field: str) -> str:
    match = _PEM_BLOCK.search(data)
    if match is None:
        raise MalformedPEMError(f"did not find valid {field} PEM data", field=field)
    try:
        return match.group(0).decode("ascii")
    except UnicodeDecodeError as exc:
        raise MalformedPEMError(f"{field} PEM data is not ASCII", field=field) from exc


def _evp_bytes_to_key(password: bytes, salt: bytes, length: int) -> bytes:
    # OpenSSL EVP_BytesToKey with MD5 and a single iteration.
    derived = b""
    block = b""
    while len(derived) < length:
        block = MD5.new(block + password + salt).digest()
        derived += block
    return derived[:length]
