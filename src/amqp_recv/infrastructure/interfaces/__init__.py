"""Infrastructure interface exports."""

from amqp_recv.infrastructure.interfaces.message_broker import MessageBroker
from amqp_recv.infrastructure.interfaces.payload_verifier import PayloadVerifier

__all__ = [
    "MessageBroker",
    "PayloadVerifier",
]
