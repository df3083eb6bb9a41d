"""Dependency wiring for the amqp-recv consumer."""

from collections.abc import Callable
from typing import BinaryIO, TextIO

import pika
from pika.adapters.blocking_connection import BlockingConnection

from amqp_recv.config import AppConfig
from amqp_recv.handlers import OutputHandler, build_handler
from amqp_recv.infrastructure import (
    CertificateVerifier,
    NoopVerifier,
    RabbitMQBroker,
    RabbitMQConnectionManager,
    RabbitMQTopologyBinder,
)
from amqp_recv.infrastructure.interfaces import MessageBroker, PayloadVerifier
from amqp_recv.lifecycle import CancellationToken, LifecycleController
from amqp_recv.logging import get_logger
from amqp_recv.worker import Worker

ConnectionFactory = Callable[[pika.URLParameters], BlockingConnection]


def get_handler(
    config: AppConfig, stdout: BinaryIO | None = None, stdin: TextIO | None = None
) -> OutputHandler:
    """Returns the output handler; compiles the template in template mode."""
    return build_handler(config.output, stdout=stdout, stdin=stdin, logger=get_logger("output"))


def get_verifier(config: AppConfig) -> PayloadVerifier:
    """Returns the payload verifier, a passthrough when no certificate is set."""
    if config.verify_cert is None:
        return NoopVerifier()
    return CertificateVerifier.from_file(config.verify_cert, logger=get_logger("verifier"))


def get_broker(
    config: AppConfig,
    token: CancellationToken,
    connection_factory: ConnectionFactory = BlockingConnection,
) -> MessageBroker:
    """Returns the broker; no network activity happens until it consumes."""
    topology = config.topology
    if topology.routing_key and not topology.exchange:
        get_logger("recv").warning(
            "Routing key has no effect without an exchange",
            extra={"routing_key": topology.routing_key},
        )

    connections = RabbitMQConnectionManager(
        config.broker.urls,
        token,
        connect_timeout=config.broker.connect_timeout.total_seconds(),
        reconnect_interval=config.broker.reconnect_interval.total_seconds(),
        connection_factory=connection_factory,
        logger=get_logger("connection"),
    )
    return RabbitMQBroker(
        connections,
        RabbitMQTopologyBinder(logger=get_logger("topology")),
        topology,
        token,
        poll_interval=config.broker.poll_interval.total_seconds(),
        logger=get_logger("broker"),
    )


def get_worker(
    config: AppConfig,
    lifecycle: LifecycleController,
    handler: OutputHandler,
    verifier: PayloadVerifier,
    connection_factory: ConnectionFactory = BlockingConnection,
) -> Worker:
    """Returns the configured worker."""
    broker = get_broker(config, lifecycle.token, connection_factory)
    return Worker(broker, verifier, handler, lifecycle, logger=get_logger("recv"))
