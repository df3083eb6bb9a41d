"""Infrastructure layer exports."""

from amqp_recv.infrastructure.rabbitmq_broker import RabbitMQBroker
from amqp_recv.infrastructure.rabbitmq_connection import (
    ConnectionState,
    RabbitMQConnectionManager,
)
from amqp_recv.infrastructure.rabbitmq_topology import RabbitMQTopologyBinder
from amqp_recv.infrastructure.signature_verifier import CertificateVerifier, NoopVerifier

__all__ = [
    "CertificateVerifier",
    "ConnectionState",
    "NoopVerifier",
    "RabbitMQBroker",
    "RabbitMQConnectionManager",
    "RabbitMQTopologyBinder",
]
