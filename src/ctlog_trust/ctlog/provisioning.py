"""Provisioning input for a brand new CT log."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import structlog
import yaml
from pydantic import BaseModel, Field, SecretStr, ValidationError, field_validator

from ..common.errors import TrustConfigError
from .config import TrustConfig
from .keys import KeyAlgorithm


LOGGER = structlog.get_logger("ctlog_trust.ctlog.provisioning")


class ProvisioningConfig(BaseModel):
    """Identity and key parameters supplied when a CT log is first created."""

    log_id: int = Field(ge=0)
    log_prefix: str = "sigstorescaffolding"
    backend_address: str = "log-server.trillian-system.svc:80"
    key_password: SecretStr
    key_algorithm: KeyAlgorithm = KeyAlgorithm.ECDSA
    root_chain_path: Optional[Path] = None

    @field_validator("log_prefix")
    @classmethod
    def _require_prefix(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("log_prefix must not be empty")
        return value

    @field_validator("key_password")
    @classmethod
    def _require_password(cls, value: SecretStr) -> SecretStr:
        if not value.get_secret_value():
            raise ValueError("key_password must not be empty")
        return value


def load_provisioning(path: Path) -> ProvisioningConfig:
    try:
        data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise TrustConfigError(f"unable to read provisioning config {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TrustConfigError(f"provisioning config {path} must be a mapping")
    if "ctlog" in data and isinstance(data["ctlog"], dict):
        data = data["ctlog"]
    try:
        return ProvisioningConfig.model_validate(data)
    except ValidationError as exc:
        raise TrustConfigError(f"invalid provisioning config {path}: {exc}") from exc


def provision(config: ProvisioningConfig) -> TrustConfig:
    """Generate a signing key and build the initial ``TrustConfig``.

    When ``root_chain_path`` is set, the root of that chain is trusted from
    the start.
    """

    trust = TrustConfig.new(
        log_id=config.log_id,
        log_prefix=config.log_prefix,
        private_key_password=config.key_password.get_secret_value(),
        backend_address=config.backend_address,
        algorithm=config.key_algorithm,
    )
    LOGGER.info(
        "ctlog_provisioned",
        log_id=config.log_id,
        log_prefix=config.log_prefix,
        key_algorithm=config.key_algorithm.value,
    )
    if config.root_chain_path is not None:
        try:
            chain = config.root_chain_path.read_bytes()
        except OSError as exc:
            raise TrustConfigError(f"unable to read root chain {config.root_chain_path}: {exc}") from exc
        trust.add_root(chain)
    return trust
