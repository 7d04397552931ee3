"""CT log trust configuration codec and root-set reconciliation."""

from .config import TrustConfig
from .keys import KeyAlgorithm, SigningKey, generate_signing_key
from .roots import extract_root
from .transcoder import DEFAULT_LAYOUT, MountLayout, decode, encode

__all__ = [
    "TrustConfig",
    "KeyAlgorithm",
    "SigningKey",
    "generate_signing_key",
    "extract_root",
    "MountLayout",
    "DEFAULT_LAYOUT",
    "decode",
    "encode",
]
