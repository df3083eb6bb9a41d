"""RabbitMQ implementation of the MessageBroker interface."""

import logging
from collections.abc import Callable

from pika.adapters.blocking_connection import BlockingChannel, BlockingConnection

from amqp_recv.domain import Delivery, Topology
from amqp_recv.exceptions import TopologyConflict
from amqp_recv.infrastructure.interfaces import MessageBroker
from amqp_recv.infrastructure.rabbitmq_connection import (
    RETRYABLE_ERRORS,
    RabbitMQConnectionManager,
)
from amqp_recv.infrastructure.rabbitmq_topology import RabbitMQTopologyBinder
from amqp_recv.lifecycle import CancellationToken
from amqp_recv.logging import get_logger


class RabbitMQBroker(MessageBroker):
    """Consumes from the configured queue over a self-healing connection."""

    def __init__(
        self,
        connections: RabbitMQConnectionManager,
        binder: RabbitMQTopologyBinder,
        topology: Topology,
        token: CancellationToken,
        poll_interval: float = 1.0,
        logger: logging.Logger | None = None,
    ):
        self._connections = connections
        self._binder = binder
        self._topology = topology
        self._token = token
        self._poll_interval = poll_interval
        self._logger = logger or get_logger("broker")
        self._channel: BlockingChannel | None = None

    def consume(self, callback: Callable[[Delivery], None]) -> None:
        """
        Runs consumer sessions until the cancellation token trips.

        Each session connects, applies the topology from scratch and polls
        for deliveries. Transport and topology failures end the session and
        are retried after the reconnect interval.

        Args:
            callback: Function called for each delivery.
        """
        while not self._token.is_cancelled:
            connection = self._connections.connect()
            if connection is None:
                break

            try:
                self._run_session(connection, callback)
            except TopologyConflict as e:
                self._logger.error(
                    "Topology conflict, retrying",
                    extra={"entity": e.entity, "reply_text": e.reply_text},
                )
            except RETRYABLE_ERRORS as e:
                self._logger.warning(
                    "Consumer session interrupted, retrying",
                    extra={"error_type": type(e).__name__, "error": str(e)},
                )
            finally:
                self._channel = None
                self._connections.close()

            if not self._token.is_cancelled and self._connections.backoff():
                break

        self._logger.info("Message consumption stopped", extra={"reason": self._token.reason})

    def _run_session(
        self, connection: BlockingConnection, callback: Callable[[Delivery], None]
    ) -> None:
        channel = connection.channel()
        channel.basic_qos(prefetch_count=1)
        queue_name = self._binder.bind(channel, self._topology)
        self._channel = channel

        def on_message(ch, method, properties, body):
            callback(Delivery.from_pika(method, properties, body))

        consumer_tag = channel.basic_consume(
            queue=queue_name,
            on_message_callback=on_message,
            auto_ack=False,
        )
        self._logger.info("Waiting for messages", extra={"queue": queue_name})

        while not self._token.is_cancelled and connection.is_open:
            connection.process_data_events(time_limit=self._poll_interval)

        if not self._token.is_cancelled:
            self._logger.warning("Connection lost", extra={"queue": queue_name})
            return

        if channel.is_open:
            channel.basic_cancel(consumer_tag)

    def acknowledge(self, delivery_tag: int) -> None:
        """Accepts a delivery on the current channel."""
        if self._channel is None:
            self._logger.warning("No open channel to acknowledge", extra={"delivery_tag": delivery_tag})
            return
        self._channel.basic_ack(delivery_tag=delivery_tag)

    def reject(self, delivery_tag: int) -> None:
        """Discards a delivery on the current channel without requeueing it."""
        if self._channel is None:
            self._logger.warning("No open channel to reject", extra={"delivery_tag": delivery_tag})
            return
        self._channel.basic_reject(delivery_tag=delivery_tag, requeue=False)
