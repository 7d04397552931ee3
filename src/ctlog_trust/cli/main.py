"""CLI entrypoint for managing the CT log trust configuration secret."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Optional

import structlog
from pydantic import ValidationError

from ..common.blobstore import DirectoryBlobStore
from ..common.errors import TrustConfigError
from ..common.observability import configure_logging
from ..common.settings import CTLogSettings
from ..ctlog import transcoder
from ..ctlog.config import TrustConfig
from ..ctlog.provisioning import load_provisioning, provision
from ..ctlog.roots import split_chain


LOGGER = structlog.get_logger("ctlog_trust.cli.main")


def _is_managed_root(name: str) -> bool:
    return transcoder.is_root_key(name) or name == transcoder.LEGACY_ROOT_CA_KEY


def _blob_store(args: argparse.Namespace, settings: CTLogSettings) -> DirectoryBlobStore:
    blob_dir = args.blob_dir or settings.blob_dir
    if blob_dir is None:
        raise TrustConfigError("no blob directory given (use --blob-dir or CTLOG_BLOB_DIR)")
    return DirectoryBlobStore(Path(blob_dir))


def _read_chain(path: str) -> bytes:
    try:
        chain = Path(path).read_bytes()
    except OSError as exc:
        raise TrustConfigError(f"unable to read certificate chain {path}: {exc}") from exc
    LOGGER.info("chain_loaded", path=path, certificates=len(split_chain(chain)))
    return chain


def _save(store: DirectoryBlobStore, config: TrustConfig, settings: CTLogSettings) -> dict[str, bytes]:
    blobs = transcoder.encode(config, settings.mount_layout())
    store.save(blobs, prune=_is_managed_root)
    return blobs


def _publish_public_key(public_key_dir: str, blobs: dict[str, bytes]) -> None:
    if transcoder.PUBLIC_KEY not in blobs:
        raise TrustConfigError("existing configuration has no public key to publish")
    DirectoryBlobStore(Path(public_key_dir)).save({transcoder.PUBLIC_KEY: blobs[transcoder.PUBLIC_KEY]})
    LOGGER.info("public_key_published", directory=public_key_dir)


def create_command(args: argparse.Namespace, settings: CTLogSettings) -> int:
    store = _blob_store(args, settings)
    existing = store.load() if store.root.is_dir() else {}
    if transcoder.CONFIG_KEY in existing and not args.force:
        LOGGER.info("ctlog_config_exists", directory=str(store.root))
        blobs = existing
    else:
        provisioning = load_provisioning(Path(args.config))
        if args.root_chain:
            provisioning = provisioning.model_copy(update={"root_chain_path": Path(args.root_chain)})
        blobs = _save(store, provision(provisioning), settings)
    if args.public_key_dir:
        _publish_public_key(args.public_key_dir, blobs)
    return 0


def add_command(args: argparse.Namespace, settings: CTLogSettings) -> int:
    store = _blob_store(args, settings)
    config = transcoder.decode(store.load())
    config.add_root(_read_chain(args.chain))
    _save(store, config, settings)
    return 0


def remove_command(args: argparse.Namespace, settings: CTLogSettings) -> int:
    store = _blob_store(args, settings)
    config = transcoder.decode(store.load())
    config.remove_root(_read_chain(args.chain))
    _save(store, config, settings)
    return 0


def show_command(args: argparse.Namespace, settings: CTLogSettings) -> int:
    config = transcoder.decode(_blob_store(args, settings).load())
    if args.json:
        print(json.dumps(config.summary(), indent=2))
    else:
        print(config)
    return 0


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Manage the trusted Fulcio roots of a CT log")
    subparsers = parser.add_subparsers(dest="command", required=True)

    create_parser = subparsers.add_parser("create", help="Provision a new CT log configuration")
    create_parser.add_argument("--config", required=True, help="Path to provisioning YAML configuration")
    create_parser.add_argument("--blob-dir", help="Directory holding the CT log secret blobs")
    create_parser.add_argument("--root-chain", help="Certificate chain whose root is trusted initially")
    create_parser.add_argument(
        "--public-key-dir",
        help="Directory that receives only the log's public key, for clients verifying the log",
    )
    create_parser.add_argument(
        "--force",
        action="store_true",
        help="Replace an existing configuration, generating a new signing key",
    )

    for name, help_text in (
        ("add", "Trust the root of a Fulcio certificate chain"),
        ("remove", "Stop trusting the root of a Fulcio certificate chain"),
    ):
        root_parser = subparsers.add_parser(name, help=help_text)
        root_parser.add_argument("--blob-dir", help="Directory holding the CT log secret blobs")
        root_parser.add_argument("--chain", required=True, help="PEM certificate chain, leaf first")

    show_parser = subparsers.add_parser("show", help="Print the decoded CT log configuration")
    show_parser.add_argument("--blob-dir", help="Directory holding the CT log secret blobs")
    show_parser.add_argument("--json", action="store_true", help="Output a JSON summary")

    return parser.parse_args(argv)


COMMANDS = {
    "create": create_command,
    "add": add_command,
    "remove": remove_command,
    "show": show_command,
}


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    try:
        settings = CTLogSettings()
    except ValidationError as exc:
        configure_logging("ctlog-trust")
        LOGGER.error("error", command=args.command, error=str(exc), error_type=type(exc).__name__)
        return 1
    configure_logging("ctlog-trust", settings.log_level)
    try:
        return COMMANDS[args.command](args, settings)
    except TrustConfigError as exc:
        LOGGER.error("error", command=args.command, error=str(exc), error_type=type(exc).__name__)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
