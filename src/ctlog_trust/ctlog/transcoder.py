"""Conversion between blob maps (secret / configmap data) and ``TrustConfig``.

``encode`` returns a map with the following keys:

* ``config``: the CT log ``LogMultiConfig`` in protobuf text format
* ``private``: the CT log private key, PEM encoded and encrypted with the password
* ``public``: the CT log public key, PEM encoded
* ``fulcio-<N>``: one entry per trusted Fulcio root

``decode`` additionally accepts the legacy single-root ``rootca`` entry that
predates multi-root support.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

import structlog

from ..common.errors import KeyFormatError, MissingFieldError, SchemaCardinalityError
from . import keys, schema
from .config import TrustConfig


LOGGER = structlog.get_logger("ctlog_trust.ctlog.transcoder")

CONFIG_KEY = "config"
PRIVATE_KEY = "private"
PUBLIC_KEY = "public"
LEGACY_ROOT_CA_KEY = "rootca"
ROOT_KEY_PREFIX = "fulcio-"


@dataclass(frozen=True, slots=True)
class MountLayout:
    """Where the CT log container finds the blobs once the secret is mounted."""

    roots_dir: str = "/ctfe-keys/"
    private_key_file: str = "/ctfe-keys/private"
    backend_name: str = "trillian"
    ext_key_usages: tuple[str, ...] = ("CodeSigning",)

    def root_path(self, blob_key: str) -> str:
        return f"{self.roots_dir.rstrip('/')}/{blob_key}"


DEFAULT_LAYOUT = MountLayout()


def root_key(index: int) -> str:
    return f"{ROOT_KEY_PREFIX}{index}"


def is_root_key(name: str) -> bool:
    return name.startswith(ROOT_KEY_PREFIX)


def decode(blobs: Mapping[str, bytes]) -> TrustConfig:
    """Build a ``TrustConfig`` from a blob map, failing on any inconsistency."""

    config_blob = _require(blobs, CONFIG_KEY)
    private_blob = _require(blobs, PRIVATE_KEY)
    public_blob = _require(blobs, PUBLIC_KEY)

    multi_config = schema.parse_multi_config(config_blob)
    log_configs = multi_config.log_configs.config if multi_config.HasField("log_configs") else []
    if len(log_configs) != 1:
        raise SchemaCardinalityError("LogConfig", len(log_configs))
    backends = multi_config.backends.backend if multi_config.HasField("backends") else []
    if len(backends) != 1:
        raise SchemaCardinalityError("Backends", len(backends))
    log_config = log_configs[0]

    if not log_config.HasField("private_key") or not log_config.private_key.Is(schema.PEMKeyFile.DESCRIPTOR):
        raise KeyFormatError("not a valid PEMKeyFile in config private_key")
    key_file = schema.PEMKeyFile()
    log_config.private_key.Unpack(key_file)

    private_key, derived_public = keys.decrypt(private_blob, key_file.password)
    declared_public = keys.load_public_pem(public_blob)
    declared_algorithm = keys.algorithm_of(declared_public)
    if declared_algorithm is not private_key.algorithm:
        raise KeyFormatError(
            f"public key is {declared_algorithm.value} but private key is {private_key.algorithm.value}"
        )
    if not private_key.matches_public(declared_public):
        LOGGER.warning("public_key_mismatch", log_prefix=log_config.prefix)

    return TrustConfig(
        log_id=log_config.log_id,
        log_prefix=log_config.prefix,
        private_key=private_key,
        private_key_password=key_file.password,
        backend_address=backends[0].backend_spec,
        trusted_roots=_collect_roots(blobs),
    )


def encode(config: TrustConfig, layout: MountLayout = DEFAULT_LAYOUT) -> dict[str, bytes]:
    """Serialize ``config`` into the blob map mounted by the CT log."""

    root_blobs = {root_key(index): root for index, root in enumerate(config.trusted_roots)}

    log_config = schema.LogConfig(
        log_id=config.log_id,
        prefix=config.log_prefix,
        roots_pem_file=[layout.root_path(name) for name in root_blobs],
        public_key=schema.PublicKey(der=config.private_key.public_der()),
        log_backend_name=layout.backend_name,
        ext_key_usages=list(layout.ext_key_usages),
    )
    log_config.private_key.Pack(
        schema.PEMKeyFile(path=layout.private_key_file, password=config.private_key_password)
    )
    multi_config = schema.LogMultiConfig(
        log_configs=schema.LogConfigSet(config=[log_config]),
        backends=schema.LogBackendSet(
            backend=[schema.LogBackend(name=layout.backend_name, backend_spec=config.backend_address)]
        ),
    )

    blobs = {
        CONFIG_KEY: schema.render_multi_config(multi_config),
        PRIVATE_KEY: keys.encrypt(config.private_key, config.private_key_password),
        PUBLIC_KEY: keys.public_pem(config.private_key),
    }
    blobs.update(root_blobs)
    return blobs


def _require(blobs: Mapping[str, bytes], field: str) -> bytes:
    value = blobs.get(field)
    if value is None:
        raise MissingFieldError(field)
    return value


def _index_order(name: str) -> tuple[int, int, str]:
    suffix = name[len(ROOT_KEY_PREFIX):]
    if suffix.isdigit():
        return (0, int(suffix), "")
    return (1, 0, suffix)


def _collect_roots(blobs: Mapping[str, bytes]) -> list[bytes]:
    candidates: list[tuple[str, bytes]] = []
    legacy = blobs.get(LEGACY_ROOT_CA_KEY)
    if legacy:
        candidates.append((LEGACY_ROOT_CA_KEY, legacy))
    for name in sorted((name for name in blobs if is_root_key(name)), key=_index_order):
        candidates.append((name, blobs[name]))

    seen: dict[bytes, str] = {}
    collisions: list[dict[str, str]] = []
    for name, content in candidates:
        if content in seen:
            collisions.append({"dropped": name, "kept": seen[content]})
            continue
        seen[content] = name
    if collisions:
        LOGGER.info("duplicate_roots_dropped", collisions=collisions)
    return list(seen)
