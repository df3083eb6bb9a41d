"""Abstract interface for message broker operations."""

from abc import ABC, abstractmethod
from collections.abc import Callable

from amqp_recv.domain import Delivery


class MessageBroker(ABC):
    """Abstract base class for message broker backends."""

    @abstractmethod
    def consume(self, callback: Callable[[Delivery], None]) -> None:
        """
        Consumes deliveries until the cancellation token trips.

        Connection failures are retried internally and never returned to the
        caller. Exceptions raised by the callback propagate once the current
        connection has been closed.

        Args:
            callback: Function called for each delivery.
        """
        pass

    @abstractmethod
    def acknowledge(self, delivery_tag: int) -> None:
        """
        Accepts a delivery so the broker removes it from the queue.

        Args:
            delivery_tag: The message delivery tag.
        """
        pass

    @abstractmethod
    def reject(self, delivery_tag: int) -> None:
        """
        Discards a delivery without requeueing it.

        Args:
            delivery_tag: The message delivery tag.
        """
        pass
