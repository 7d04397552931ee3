from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest
import yaml

from ctlog_trust.cli.main import main as ctlog_cli_main
from ctlog_trust.common import observability
from ctlog_trust.common.blobstore import DirectoryBlobStore
from ctlog_trust.ctlog import transcoder

from tests.utils import go_fixtures
from tests.utils.certs import make_chain


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path: Path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("CTLOG_BLOB_DIR", raising=False)
    monkeypatch.setattr(observability, "_logging_configured", False)


def _provisioning_file(tmp_path: Path) -> Path:
    path = tmp_path / "ctlog.yaml"
    path.write_text(
        yaml.safe_dump({"ctlog": {"log_id": 2022, "log_prefix": "2022-ctlog", "key_password": "mytestpassword"}}),
        encoding="utf-8",
    )
    return path


def _chain_file(tmp_path: Path, name: str, intermediates: int = 1) -> tuple[Path, bytes]:
    chain, root = make_chain(intermediates, root_name=name)
    path = tmp_path / f"{name.replace(' ', '-')}.pem"
    path.write_bytes(chain)
    return path, root


def test_create_add_remove_show(tmp_path: Path, capsys) -> None:
    blob_dir = tmp_path / "secret"
    first_chain, first_root = _chain_file(tmp_path, "first root")
    second_chain, second_root = _chain_file(tmp_path, "second root", intermediates=0)

    assert ctlog_cli_main(
        ["create", "--config", str(_provisioning_file(tmp_path)), "--blob-dir", str(blob_dir), "--root-chain", str(first_chain)]
    ) == 0
    assert transcoder.decode(DirectoryBlobStore(blob_dir).load()).trusted_roots == (first_root,)

    assert ctlog_cli_main(["add", "--blob-dir", str(blob_dir), "--chain", str(second_chain)]) == 0
    assert transcoder.decode(DirectoryBlobStore(blob_dir).load()).trusted_roots == (first_root, second_root)

    assert ctlog_cli_main(["remove", "--blob-dir", str(blob_dir), "--chain", str(first_chain)]) == 0
    blobs = DirectoryBlobStore(blob_dir).load()
    assert sorted(name for name in blobs if name.startswith("fulcio-")) == ["fulcio-0"]
    assert transcoder.decode(blobs).trusted_roots == (second_root,)

    capsys.readouterr()
    assert ctlog_cli_main(["show", "--blob-dir", str(blob_dir), "--json"]) == 0
    summary = json.loads(capsys.readouterr().out)
    assert summary["log_id"] == 2022
    assert summary["log_prefix"] == "2022-ctlog"
    assert len(summary["trusted_roots"]) == 1
    assert "CN=second root" in summary["trusted_roots"][0]["subject"]


def test_create_keeps_existing_configuration(tmp_path: Path) -> None:
    blob_dir = tmp_path / "secret"
    config_path = _provisioning_file(tmp_path)
    assert ctlog_cli_main(["create", "--config", str(config_path), "--blob-dir", str(blob_dir)]) == 0
    existing = DirectoryBlobStore(blob_dir).load()

    assert ctlog_cli_main(["create", "--config", str(config_path), "--blob-dir", str(blob_dir)]) == 0
    assert DirectoryBlobStore(blob_dir).load() == existing

    assert ctlog_cli_main(["create", "--config", str(config_path), "--blob-dir", str(blob_dir), "--force"]) == 0
    assert DirectoryBlobStore(blob_dir).load()["private"] != existing["private"]


def test_add_migrates_legacy_layout(tmp_path: Path) -> None:
    blob_dir = tmp_path / "secret"
    DirectoryBlobStore(blob_dir).save(go_fixtures.ecdsa_blobs())
    chain, root = _chain_file(tmp_path, "new fulcio")

    assert ctlog_cli_main(["add", "--blob-dir", str(blob_dir), "--chain", str(chain)]) == 0

    blobs = DirectoryBlobStore(blob_dir).load()
    assert "rootca" not in blobs
    assert blobs["fulcio-0"] == go_fixtures.ROOT_CERT
    assert blobs["fulcio-1"] == root


def test_show_prints_redacted_text(tmp_path: Path, capsys) -> None:
    blob_dir = tmp_path / "secret"
    DirectoryBlobStore(blob_dir).save(go_fixtures.ecdsa_blobs())

    assert ctlog_cli_main(["show", "--blob-dir", str(blob_dir)]) == 0

    out = capsys.readouterr().out
    assert "LogPrefix: 2022-ctlog" in out
    assert "mytestpassword" not in out


def test_blob_dir_from_environment(tmp_path: Path, monkeypatch, capsys) -> None:
    blob_dir = tmp_path / "secret"
    DirectoryBlobStore(blob_dir).save(go_fixtures.rsa_blobs())
    monkeypatch.setenv("CTLOG_BLOB_DIR", str(blob_dir))
    capsys.readouterr()

    assert ctlog_cli_main(["show", "--json"]) == 0
    assert json.loads(capsys.readouterr().out)["key_algorithm"] == "rsa"


def test_errors_exit_nonzero(tmp_path: Path, caplog) -> None:
    blob_dir = tmp_path / "secret"
    DirectoryBlobStore(blob_dir).save({"config": b"", "private": b""})

    with caplog.at_level(logging.ERROR):
        assert ctlog_cli_main(["show", "--blob-dir", str(blob_dir)]) == 1

    payload = json.loads(caplog.records[-1].message)
    assert payload["message"] == "error"
    assert payload["error_type"] == "MissingFieldError"


def test_missing_blob_dir_exits_nonzero() -> None:
    assert ctlog_cli_main(["show"]) == 1


def test_unreadable_chain_exits_nonzero(tmp_path: Path) -> None:
    blob_dir = tmp_path / "secret"
    DirectoryBlobStore(blob_dir).save(go_fixtures.ecdsa_blobs())

    assert ctlog_cli_main(["add", "--blob-dir", str(blob_dir), "--chain", str(tmp_path / "absent.pem")]) == 1


def test_create_publishes_public_key(tmp_path: Path) -> None:
    blob_dir = tmp_path / "secret"
    public_dir = tmp_path / "public"
    config_path = _provisioning_file(tmp_path)

    assert ctlog_cli_main(
        ["create", "--config", str(config_path), "--blob-dir", str(blob_dir), "--public-key-dir", str(public_dir)]
    ) == 0

    published = DirectoryBlobStore(public_dir).load()
    assert published == {"public": DirectoryBlobStore(blob_dir).load()["public"]}

    published_path = public_dir / "public"
    published_path.unlink()
    assert ctlog_cli_main(
        ["create", "--config", str(config_path), "--blob-dir", str(blob_dir), "--public-key-dir", str(public_dir)]
    ) == 0
    assert DirectoryBlobStore(public_dir).load() == published


def test_invalid_settings_exit_nonzero(monkeypatch, caplog) -> None:
    monkeypatch.setenv("CTLOG_ROOTS_DIR", "relative/")

    with caplog.at_level(logging.ERROR):
        assert ctlog_cli_main(["show"]) == 1

    payload = json.loads(caplog.records[-1].message)
    assert payload["message"] == "error"
    assert payload["error_type"] == "ValidationError"
