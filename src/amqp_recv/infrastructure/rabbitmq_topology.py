"""Declares the exchange, queue and binding a consumer reads from."""

import logging

import pika.exceptions
from pika.adapters.blocking_connection import BlockingChannel

from amqp_recv.domain import Topology
from amqp_recv.exceptions import TopologyConflict
from amqp_recv.logging import get_logger

PRECONDITION_FAILED = 406


class RabbitMQTopologyBinder:
    """Applies a Topology to a freshly opened channel."""

    def __init__(self, logger: logging.Logger | None = None):
        self._logger = logger or get_logger("topology")

    def bind(self, channel: BlockingChannel, topology: Topology) -> str:
        """
        Declares exchange (if any), then queue, then binding.

        All declarations are idempotent and are repeated on every reconnect.

        Args:
            channel: Open channel on the current connection.
            topology: The queue and exchange configuration.

        Returns:
            The effective queue name (broker-generated when none was given).

        Raises:
            TopologyConflict: If an existing entity has different attributes.
        """
        if topology.exchange:
            self._declare(
                topology.exchange,
                channel.exchange_declare,
                exchange=topology.exchange,
                exchange_type=topology.exchange_kind.value,
                durable=True,
            )

        arguments = {"x-queue-mode": "lazy"} if topology.lazy else None
        named = bool(topology.queue)
        result = self._declare(
            topology.queue or "<generated>",
            channel.queue_declare,
            queue=topology.queue,
            durable=named,
            exclusive=not named,
            auto_delete=not named,
            arguments=arguments,
        )
        queue_name = result.method.queue

        if topology.exchange:
            if topology.routing_key and not topology.binding_key:
                self._logger.debug(
                    "Routing key ignored for fanout exchange",
                    extra={"routing_key": topology.routing_key},
                )
            self._declare(
                queue_name,
                channel.queue_bind,
                queue=queue_name,
                exchange=topology.exchange,
                routing_key=topology.binding_key,
            )

        self._logger.info(
            "Queue infrastructure ready",
            extra={
                "queue": queue_name,
                "exchange": topology.exchange,
                "kind": topology.exchange_kind.value,
                "routing_key": topology.binding_key,
                "lazy": topology.lazy,
            },
        )
        return queue_name

    def _declare(self, entity: str, operation, **kwargs):
        try:
            return operation(**kwargs)
        except pika.exceptions.ChannelClosedByBroker as e:
            if e.reply_code == PRECONDITION_FAILED:
                raise TopologyConflict(entity, e.reply_text, cause=e) from e
            raise
