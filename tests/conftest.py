from __future__ import annotations

import pytest
import structlog

from ctlog_trust.ctlog.config import TrustConfig
from ctlog_trust.ctlog.keys import KeyAlgorithm, generate_signing_key

from tests.utils.certs import make_chain


@pytest.fixture(autouse=True)
def _reset_structlog():
    yield
    structlog.reset_defaults()


@pytest.fixture(scope="session")
def rsa_key():
    # 2048 bits keeps the suite fast; production keys are 4096.
    return generate_signing_key(KeyAlgorithm.RSA, rsa_bits=2048)


@pytest.fixture
def ecdsa_key():
    return generate_signing_key(KeyAlgorithm.ECDSA)


@pytest.fixture
def chain_and_root():
    return make_chain(intermediates=1)


@pytest.fixture
def trust_config(ecdsa_key):
    return TrustConfig(
        log_id=2022,
        log_prefix="2022-ctlog",
        private_key=ecdsa_key,
        private_key_password="mytestpassword",
        backend_address="log-server.trillian-system.svc:80",
    )
