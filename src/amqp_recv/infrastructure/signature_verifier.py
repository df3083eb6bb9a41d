"""Public-key verification of delivery payloads."""

import base64
import binascii
import logging
from pathlib import Path

from cryptography import x509
from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa

from amqp_recv.domain import Delivery
from amqp_recv.exceptions import ConfigurationError, VerificationFailure
from amqp_recv.infrastructure.interfaces import PayloadVerifier
from amqp_recv.logging import get_logger

SIGNATURE_HEADER = "X-Signature"


def load_public_key(path: Path):
    """
    Loads an RSA or EC public key from a PEM certificate or public key file.

    Raises:
        ConfigurationError: If the file is unreadable or holds no usable key.
    """
    try:
        data = path.read_bytes()
    except OSError as e:
        raise ConfigurationError(f"Cannot read verification certificate '{path}'", cause=e) from e

    try:
        key = x509.load_pem_x509_certificate(data).public_key()
    except ValueError:
        try:
            key = serialization.load_pem_public_key(data)
        except (ValueError, UnsupportedAlgorithm) as e:
            raise ConfigurationError(
                f"No PEM certificate or public key in '{path}'", cause=e
            ) from e

    if not isinstance(key, (rsa.RSAPublicKey, ec.EllipticCurvePublicKey)):
        raise ConfigurationError(f"Unsupported key type {type(key).__name__} in '{path}'")
    return key


class NoopVerifier(PayloadVerifier):
    """Accepts every delivery; used when no certificate is configured."""

    def verify(self, delivery: Delivery) -> None:
        return None


class CertificateVerifier(PayloadVerifier):
    """
    Verifies the ``X-Signature`` header against the delivery body.

    The header holds the signature as raw bytes or as a base64 string. RSA
    keys use PKCS#1 v1.5 padding, EC keys use ECDSA; both hash with SHA-512.
    """

    def __init__(self, public_key, logger: logging.Logger | None = None):
        self._public_key = public_key
        self._logger = logger or get_logger("verifier")

    @classmethod
    def from_file(cls, path: Path, logger: logging.Logger | None = None) -> "CertificateVerifier":
        verifier = cls(load_public_key(path), logger=logger)
        verifier._logger.info("Verification key loaded", extra={"path": str(path)})
        return verifier

    def verify(self, delivery: Delivery) -> None:
        """
        Verifies the delivery signature.

        Raises:
            VerificationFailure: If the signature is missing, malformed or wrong.
        """
        signature = self._extract_signature(delivery)
        try:
            if isinstance(self._public_key, rsa.RSAPublicKey):
                self._public_key.verify(
                    signature, delivery.body, padding.PKCS1v15(), hashes.SHA512()
                )
            else:
                self._public_key.verify(signature, delivery.body, ec.ECDSA(hashes.SHA512()))
        except InvalidSignature as e:
            raise VerificationFailure(delivery.delivery_tag, "signature mismatch", cause=e) from e

    def _extract_signature(self, delivery: Delivery) -> bytes:
        value = delivery.headers.get(SIGNATURE_HEADER)
        if value is None:
            raise VerificationFailure(delivery.delivery_tag, f"missing {SIGNATURE_HEADER} header")
        if isinstance(value, (bytes, bytearray)):
            return bytes(value)
        if isinstance(value, str):
            try:
                return base64.b64decode(value, validate=True)
            except binascii.Error as e:
                raise VerificationFailure(
                    delivery.delivery_tag, "signature is not valid base64", cause=e
                ) from e
        raise VerificationFailure(
            delivery.delivery_tag, f"unsupported signature type {type(value).__name__}"
        )
