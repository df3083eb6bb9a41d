"""RabbitMQ connection management across multiple broker endpoints."""

import logging
from collections.abc import Callable, Sequence
from enum import StrEnum
from urllib.parse import urlsplit, urlunsplit

import pika
import pika.exceptions
from pika.adapters.blocking_connection import BlockingConnection

from amqp_recv.exceptions import ConfigurationError, ConnectError
from amqp_recv.lifecycle import CancellationToken
from amqp_recv.logging import get_logger

RETRYABLE_ERRORS = (pika.exceptions.AMQPError, ConnectError, OSError)


class ConnectionState(StrEnum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    CLOSING = "closing"
    CLOSED = "closed"


def redact_url(url: str) -> str:
    """Removes the password from a broker url for logging."""
    parts = urlsplit(url)
    if parts.password is None:
        return url
    netloc = parts.netloc.replace(f":{parts.password}@", ":***@", 1)
    return urlunsplit(parts._replace(netloc=netloc))


class RabbitMQConnectionManager:
    """
    Owns the single broker connection and re-establishes it on failure.

    Endpoints are tried round-robin; the cursor survives reconnects so a
    dropped connection moves on to the next endpoint. Every wait happens on
    the cancellation token, so an interrupt ends the retry loop promptly.
    """

    def __init__(
        self,
        urls: Sequence[str],
        token: CancellationToken,
        connect_timeout: float = 30.0,
        reconnect_interval: float = 5.0,
        connection_factory: Callable[[pika.URLParameters], BlockingConnection] = BlockingConnection,
        logger: logging.Logger | None = None,
    ):
        if not urls:
            raise ConfigurationError("At least one broker url is required")

        self._urls = list(urls)
        self._token = token
        self._connect_timeout = connect_timeout
        self._reconnect_interval = reconnect_interval
        self._connection_factory = connection_factory
        self._logger = logger or get_logger("connection")

        self._parameters = [self._build_parameters(url) for url in self._urls]
        self._cursor = 0
        self._connection: BlockingConnection | None = None
        self._state = ConnectionState.DISCONNECTED
        self._current_endpoint: str | None = None

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def current_endpoint(self) -> str | None:
        return self._current_endpoint

    def _build_parameters(self, url: str) -> pika.URLParameters:
        try:
            parameters = pika.URLParameters(url)
        except ValueError as e:
            raise ConfigurationError(f"Invalid broker url '{redact_url(url)}'", cause=e) from e
        parameters.socket_timeout = self._connect_timeout
        parameters.stack_timeout = self._connect_timeout
        return parameters

    def _next_endpoint(self) -> tuple[str, pika.URLParameters]:
        index = self._cursor % len(self._urls)
        self._cursor += 1
        return self._urls[index], self._parameters[index]

    def _open(self, url: str, parameters: pika.URLParameters) -> BlockingConnection:
        try:
            return self._connection_factory(parameters)
        except RETRYABLE_ERRORS as e:
            raise ConnectError(redact_url(url), cause=e) from e

    def connect(self) -> BlockingConnection | None:
        """
        Connects to the next reachable endpoint.

        Retries forever at the reconnect interval; connection errors are
        logged and never raised.

        Returns:
            The open connection, or None if cancellation was observed first.
        """
        self.close()

        attempt = 0
        while not self._token.is_cancelled:
            attempt += 1
            url, parameters = self._next_endpoint()
            self._state = ConnectionState.CONNECTING
            self._current_endpoint = redact_url(url)
            self._logger.info(
                "Connecting to broker",
                extra={"endpoint": self._current_endpoint, "attempt": attempt},
            )

            try:
                connection = self._open(url, parameters)
            except ConnectError as e:
                self._state = ConnectionState.DISCONNECTED
                self._logger.warning(
                    "Broker connection failed",
                    extra={
                        "endpoint": e.endpoint,
                        "attempt": attempt,
                        "error": str(e.cause),
                        "retry_in": self._reconnect_interval,
                    },
                )
                if self.backoff():
                    break
                continue

            if self._token.is_cancelled:
                self._connection = connection
                self.close()
                break

            self._connection = connection
            self._state = ConnectionState.CONNECTED
            self._logger.info("Connected to broker", extra={"endpoint": self._current_endpoint})
            return connection

        self._logger.info("Connection attempts stopped", extra={"reason": self._token.reason})
        return None

    def backoff(self) -> bool:
        """
        Waits one reconnect interval.

        Returns:
            True if cancellation was observed during the wait.
        """
        return self._token.wait(self._reconnect_interval)

    def close(self) -> None:
        """Closes the current connection; errors are logged, not raised."""
        if self._connection is None:
            return

        self._state = ConnectionState.CLOSING
        try:
            if self._connection.is_open:
                self._connection.close()
            self._logger.info("Connection closed", extra={"endpoint": self._current_endpoint})
        except RETRYABLE_ERRORS as e:
            self._logger.warning(
                "Error closing connection",
                extra={"endpoint": self._current_endpoint, "error": str(e)},
            )
        finally:
            self._connection = None
            self._state = ConnectionState.CLOSED
