"""Worker that handles queue message consumption and orchestration."""

import logging

from amqp_recv.domain import Delivery
from amqp_recv.exceptions import VerificationFailure
from amqp_recv.handlers import OutputHandler
from amqp_recv.infrastructure.interfaces import MessageBroker, PayloadVerifier
from amqp_recv.lifecycle import LifecycleController
from amqp_recv.logging import get_logger


class Worker:
    """Consumes a single message from the queue and renders it."""

    def __init__(
        self,
        broker: MessageBroker,
        verifier: PayloadVerifier,
        handler: OutputHandler,
        lifecycle: LifecycleController,
        logger: logging.Logger | None = None,
    ):
        self._broker = broker
        self._verifier = verifier
        self._handler = handler
        self._lifecycle = lifecycle
        self._logger = logger or get_logger("recv")
        self._rendered = False

    @property
    def rendered(self) -> bool:
        return self._rendered

    def start(self) -> None:
        """Consumes until a message is rendered or the process is interrupted."""
        self._logger.info(
            "Worker initialized, waiting for messages",
            extra={"output": self._handler.output_type.value},
        )
        self._broker.consume(self._on_message)

    def _on_message(self, delivery: Delivery) -> None:
        """Callback for each received delivery."""
        if self._rendered or self._lifecycle.token.is_cancelled:
            # left unacknowledged; the broker requeues it when the connection closes
            self._logger.debug(
                "Delivery ignored during shutdown",
                extra={"delivery_tag": delivery.delivery_tag},
            )
            return

        self._logger.info(
            "Message received",
            extra={
                "delivery_tag": delivery.delivery_tag,
                "exchange": delivery.exchange,
                "routing_key": delivery.routing_key,
                "redelivered": delivery.redelivered,
            },
        )

        try:
            self._verifier.verify(delivery)
        except VerificationFailure as e:
            self._logger.warning(
                "Delivery dropped, verification failed",
                extra={"delivery_tag": e.delivery_tag, "reason": e.reason},
            )
            self._broker.reject(delivery.delivery_tag)
            return

        self._handler.render(delivery)
        self._rendered = True

        try:
            self._broker.acknowledge(delivery.delivery_tag)
            self._logger.info(
                "Message processed successfully",
                extra={"delivery_tag": delivery.delivery_tag, "size": len(delivery.body)},
            )
        finally:
            self._lifecycle.done()
