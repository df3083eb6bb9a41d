"""Domain models for consumed deliveries and queue topology."""

import base64
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, field_serializer, field_validator

from amqp_recv.logging import get_logger

BYTES_MARKER = "$bytes"


def _wrap_bytes(value):
    """Replaces bytes in a header table with {"$bytes": "<base64>"} objects."""
    if isinstance(value, (bytes, bytearray)):
        return {BYTES_MARKER: base64.b64encode(bytes(value)).decode("ascii")}
    if isinstance(value, dict):
        return {key: _wrap_bytes(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_wrap_bytes(item) for item in value]
    return value


def _unwrap_bytes(value):
    if isinstance(value, dict):
        if set(value) == {BYTES_MARKER} and isinstance(value[BYTES_MARKER], str):
            return base64.b64decode(value[BYTES_MARKER])
        return {key: _unwrap_bytes(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_unwrap_bytes(item) for item in value]
    return value


class ExchangeKind(StrEnum):
    """Supported exchange types."""

    DIRECT = "direct"
    TOPIC = "topic"
    FANOUT = "fanout"


class OutputType(StrEnum):
    """Supported output renderers."""

    BODY = "body"
    DUMP = "dump"
    JSON = "json"
    TEMPLATE = "template"


class Topology(BaseModel, frozen=True):
    """
    Queue, exchange and binding configuration applied on every connection.

    An empty queue name asks the broker to generate one. An empty exchange
    name means the default exchange and no binding.
    """

    queue: str = ""
    lazy: bool = False
    exchange: str = ""
    exchange_kind: ExchangeKind = ExchangeKind.DIRECT
    routing_key: str = ""

    @property
    def binding_key(self) -> str:
        """Routing key used for the binding; fanout exchanges ignore it."""
        if self.exchange_kind == ExchangeKind.FANOUT:
            return ""
        return self.routing_key


class Delivery(BaseModel):
    """A single consumed message with its broker metadata and properties."""

    model_config = ConfigDict(
        frozen=True,
        ser_json_bytes="base64",
        val_json_bytes="base64",
    )

    delivery_tag: int
    redelivered: bool = False
    exchange: str = ""
    routing_key: str = ""
    consumer_tag: str | None = None

    content_type: str | None = None
    content_encoding: str | None = None
    headers: dict[str, Any] = {}
    delivery_mode: int | None = None
    priority: int | None = None
    correlation_id: str | None = None
    reply_to: str | None = None
    expiration: str | None = None
    message_id: str | None = None
    timestamp: datetime | None = None
    type: str | None = None
    user_id: str | None = None
    app_id: str | None = None

    body: bytes = b""

    @field_validator("headers", mode="before")
    @classmethod
    def _decode_header_bytes(cls, value):
        return _unwrap_bytes(value) if isinstance(value, dict) else value

    @field_serializer("headers", when_used="json")
    def _encode_header_bytes(self, headers: dict[str, Any]) -> dict[str, Any]:
        # nested tables and arrays included
        return _wrap_bytes(headers)

    @classmethod
    def from_pika(cls, method, properties, body: bytes) -> "Delivery":
        """
        Builds a delivery from the triple passed to a pika consumer callback.

        Args:
            method: ``pika.spec.Basic.Deliver`` frame.
            properties: ``pika.spec.BasicProperties`` of the message.
            body: Raw message body.

        Returns:
            Delivery with all metadata copied out of the pika objects.
        """
        timestamp = None
        if properties is not None and properties.timestamp is not None:
            try:
                timestamp = datetime.fromtimestamp(properties.timestamp, tz=timezone.utc)
            except (ValueError, OverflowError, OSError) as e:
                get_logger("broker").warning(
                    "Delivery timestamp out of range, dropped",
                    extra={"timestamp": properties.timestamp, "error": str(e)},
                )

        props = {}
        if properties is not None:
            props = {
                "content_type": properties.content_type,
                "content_encoding": properties.content_encoding,
                "headers": dict(properties.headers or {}),
                "delivery_mode": properties.delivery_mode,
                "priority": properties.priority,
                "correlation_id": properties.correlation_id,
                "reply_to": properties.reply_to,
                "expiration": properties.expiration,
                "message_id": properties.message_id,
                "type": properties.type,
                "user_id": properties.user_id,
                "app_id": properties.app_id,
            }

        return cls(
            delivery_tag=method.delivery_tag,
            redelivered=bool(method.redelivered),
            exchange=method.exchange or "",
            routing_key=method.routing_key or "",
            consumer_tag=method.consumer_tag,
            timestamp=timestamp,
            body=bytes(body or b""),
            **props,
        )
