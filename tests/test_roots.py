from __future__ import annotations

import pytest

from ctlog_trust.common.errors import EmptyChainError, MalformedPEMError
from ctlog_trust.ctlog.roots import describe_root, extract_root, split_chain

from tests.utils import go_fixtures
from tests.utils.certs import make_chain, make_root


def test_extract_root_with_intermediate() -> None:
    chain, root = make_chain(intermediates=1)

    assert len(split_chain(chain)) == 3
    assert extract_root(chain) == root


def test_extract_root_without_intermediate() -> None:
    chain, root = make_chain(intermediates=0)

    assert len(split_chain(chain)) == 2
    assert extract_root(chain) == root


def test_lone_root_is_its_own_root() -> None:
    root = make_root()

    assert extract_root(root) == root


def test_existing_fulcio_root_is_stable() -> None:
    assert extract_root(go_fixtures.ROOT_CERT) == go_fixtures.ROOT_CERT


def test_extraction_ignores_surrounding_text() -> None:
    chain, root = make_chain(intermediates=1)

    assert extract_root(b"subject: leaf\n" + chain + b"\ntrailer\n") == root


@pytest.mark.parametrize("chain", [b"", b"   \n", b"no certificates here"])
def test_empty_chain_is_rejected(chain: bytes) -> None:
    with pytest.raises(EmptyChainError):
        extract_root(chain)


def test_corrupt_certificate_is_rejected() -> None:
    bogus = b"-----BEGIN CERTIFICATE-----\nAAAA\n-----END CERTIFICATE-----\n"

    with pytest.raises(MalformedPEMError):
        extract_root(bogus)


def test_describe_root_reports_subject_and_fingerprint() -> None:
    description = describe_root(make_root("fulcio describe"))

    assert "CN=fulcio describe" in description["subject"]
    assert len(description["fingerprint"]) == 64


def test_describe_root_tolerates_opaque_bytes() -> None:
    assert describe_root(b"this is a test cert") == {"subject": "<unparseable>", "fingerprint": ""}
