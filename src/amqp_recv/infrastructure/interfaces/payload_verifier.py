"""Abstract interface for delivery payload verification."""

from abc import ABC, abstractmethod

from amqp_recv.domain import Delivery


class PayloadVerifier(ABC):
    """Abstract base class for payload signature checks."""

    @abstractmethod
    def verify(self, delivery: Delivery) -> None:
        """
        Checks that the delivery body carries a valid signature.

        Args:
            delivery: The delivery to verify.

        Raises:
            VerificationFailure: If the signature is missing or invalid.
        """
        pass
