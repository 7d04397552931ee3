"""Runtime settings for the ctlog-trust tooling."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..ctlog.transcoder import MountLayout


def env_field(default, env_name: str):
    return Field(default, validation_alias=env_name)


class CTLogSettings(BaseSettings):
    """Where the blobs live and how the CT log container mounts them."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    blob_dir: Optional[Path] = env_field(None, "CTLOG_BLOB_DIR")
    log_level: str = env_field("INFO", "CTLOG_LOG_LEVEL")
    roots_dir: str = env_field("/ctfe-keys/", "CTLOG_ROOTS_DIR")
    private_key_file: str = env_field("/ctfe-keys/private", "CTLOG_PRIVATE_KEY_FILE")
    backend_name: str = env_field("trillian", "CTLOG_BACKEND_NAME")
    ext_key_usages: str = env_field("CodeSigning", "CTLOG_EXT_KEY_USAGES")

    @field_validator("roots_dir")
    @classmethod
    def _require_absolute_roots_dir(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError("roots_dir must be an absolute path")
        return value

    @property
    def ext_key_usage_list(self) -> tuple[str, ...]:
        return tuple(item.strip() for item in self.ext_key_usages.split(",") if item.strip())

    def mount_layout(self) -> MountLayout:
        return MountLayout(
            roots_dir=self.roots_dir,
            private_key_file=self.private_key_file,
            backend_name=self.backend_name,
            ext_key_usages=self.ext_key_usage_list,
        )
