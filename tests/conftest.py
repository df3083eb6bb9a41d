"""Shared fixtures for amqp-recv tests."""

import logging
from datetime import datetime, timedelta, timezone

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

from amqp_recv.domain import Delivery
from amqp_recv.lifecycle import CancellationToken


@pytest.fixture
def token():
    return CancellationToken()


@pytest.fixture
def delivery():
    return Delivery(
        delivery_tag=1,
        exchange="events",
        routing_key="orders.created",
        content_type="text/plain",
        headers={"source": "tests", "attempt": 1},
        body=b"hello",
    )


@pytest.fixture(scope="session")
def rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def cert_path(tmp_path, rsa_key):
    """Self-signed PEM certificate for ``rsa_key``."""
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "amqp-recv-test")])
    now = datetime.now(timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(rsa_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(minutes=1))
        .not_valid_after(now + timedelta(days=1))
        .sign(rsa_key, hashes.SHA256())
    )
    path = tmp_path / "cert.pem"
    path.write_bytes(cert.public_bytes(serialization.Encoding.PEM))
    return path


@pytest.fixture(autouse=True)
def restore_root_logger():
    """setup_logging replaces root handlers; put them back after each test."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


@pytest.fixture(autouse=True)
def clear_broker_env(monkeypatch):
    for name in [
        "BROKER_URL",
        "BROKER_EXCHANGE",
        "BROKER_KIND",
        "BROKER_SIGN",
        "BROKER_QUEUE",
        "BROKER_LAZY",
        "BROKER_OUTPUT",
        "BROKER_ROUTING_KEY",
        "BROKER_RECONNECT_INTERVAL",
        "BROKER_CONNECT_TIMEOUT",
        "BROKER_QUIET",
    ]:
        monkeypatch.delenv(name, raising=False)
