"""Tests for the output handler variants."""

import io
import json
import logging
from datetime import datetime, timezone

import pika
import pytest

from amqp_recv.domain import Delivery, OutputType
from amqp_recv.exceptions import RenderError, TemplateCompileError
from amqp_recv.handlers import (
    BodyHandler,
    DumpHandler,
    JsonHandler,
    TemplateHandler,
    build_handler,
)
from amqp_recv.handlers.output_handlers import translate_go_fields
from tests.fakes import make_method


class TestDeliveryFromPika:
    """Test conversion of pika callback arguments."""

    def test_copies_method_and_properties(self):
        properties = pika.BasicProperties(
            content_type="application/json",
            headers={"k": "v"},
            timestamp=1700000000,
            message_id="m-1",
            delivery_mode=2,
        )

        delivery = Delivery.from_pika(
            make_method(delivery_tag=7, exchange="ex", routing_key="rk", redelivered=True),
            properties,
            b"{}",
        )

        assert delivery.delivery_tag == 7
        assert delivery.redelivered is True
        assert delivery.exchange == "ex"
        assert delivery.routing_key == "rk"
        assert delivery.consumer_tag == "ctag-1"
        assert delivery.content_type == "application/json"
        assert delivery.headers == {"k": "v"}
        assert delivery.message_id == "m-1"
        assert delivery.delivery_mode == 2
        assert delivery.timestamp == datetime.fromtimestamp(1700000000, tz=timezone.utc)
        assert delivery.body == b"{}"

    def test_millisecond_timestamp_is_dropped(self, caplog):
        properties = pika.BasicProperties(timestamp=1760659200000)

        with caplog.at_level(logging.WARNING):
            delivery = Delivery.from_pika(make_method(), properties, b"hello")

        assert delivery.timestamp is None
        assert delivery.body == b"hello"
        assert "Delivery timestamp out of range" in caplog.text

    def test_missing_properties(self):
        delivery = Delivery.from_pika(make_method(), None, b"x")

        assert delivery.headers == {}
        assert delivery.timestamp is None


class TestBodyHandler:
    """Test raw body output."""

    def test_writes_body_verbatim(self, delivery):
        stdout = io.BytesIO()
        BodyHandler(stdout).render(delivery)
        assert stdout.getvalue() == b"hello"

    def test_binary_body_is_untouched(self):
        stdout = io.BytesIO()
        BodyHandler(stdout).render(Delivery(delivery_tag=1, body=b"\x00\xff\xfe\n"))
        assert stdout.getvalue() == b"\x00\xff\xfe\n"

    def test_empty_body_writes_nothing(self):
        stdout = io.BytesIO()
        BodyHandler(stdout).render(Delivery(delivery_tag=1))
        assert stdout.getvalue() == b""

    def test_broken_stream_is_render_error(self, delivery):
        stdout = io.BytesIO()
        stdout.close()

        with pytest.raises(RenderError) as exc_info:
            BodyHandler(stdout).render(delivery)

        assert exc_info.value.output == "body"


class TestJsonHandler:
    """Test JSON output."""

    def test_round_trip_preserves_delivery(self):
        original = Delivery(
            delivery_tag=3,
            redelivered=True,
            exchange="events",
            routing_key="rk",
            headers={
                "n": 1,
                "s": "v",
                "X-Signature": b"\xff\x00sig",
                "nested": {"raw": b"\x01\x02", "list": [b"\x03", "text"]},
            },
            timestamp=datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
            body=b"\x00\xff binary",
        )
        stdout = io.BytesIO()

        JsonHandler(stdout).render(original)

        assert Delivery.model_validate_json(stdout.getvalue()) == original

    def test_body_is_base64(self, delivery):
        stdout = io.BytesIO()
        JsonHandler(stdout).render(delivery)

        document = json.loads(stdout.getvalue())
        assert document["body"] == "aGVsbG8="
        assert document["routing_key"] == "orders.created"
        assert stdout.getvalue().endswith(b"\n")

    def test_bytes_headers_are_marked(self):
        stdout = io.BytesIO()
        JsonHandler(stdout).render(Delivery(delivery_tag=1, headers={"X-Signature": b"\xff\x00sig"}))

        document = json.loads(stdout.getvalue())
        assert document["headers"] == {"X-Signature": {"$bytes": "/wBzaWc="}}

    def test_marked_headers_decode_to_bytes(self):
        delivery = Delivery.model_validate_json(
            '{"delivery_tag": 1, "headers": {"sig": {"$bytes": "aGk="}, "plain": "aGk="}}'
        )

        assert delivery.headers == {"sig": b"hi", "plain": "aGk="}


class TestDumpHandler:
    """Test structural dump output."""

    def test_dump_contains_type_and_fields(self, delivery):
        stdout = io.BytesIO()
        DumpHandler(stdout).render(delivery)

        text = stdout.getvalue().decode("utf-8")
        assert text.startswith("(amqp_recv.domain.models.Delivery) ")
        assert "'routing_key': 'orders.created'" in text
        assert "b'hello'" in text


class TestTemplateHandler:
    """Test Jinja template output."""

    def test_renders_body_as_text(self):
        stdout = io.BytesIO()
        handler = TemplateHandler("{{ body | asText }}!", stdout)

        handler.render(Delivery(delivery_tag=1, body=b"world"))

        assert stdout.getvalue() == b"world!"

    def test_fields_and_delivery_in_context(self, delivery):
        stdout = io.BytesIO()
        handler = TemplateHandler(
            "{{ routing_key }} {{ headers.source }} {{ delivery.exchange }}\n", stdout
        )

        handler.render(delivery)

        assert stdout.getvalue() == b"orders.created tests events\n"

    def test_go_style_references(self, delivery):
        stdout = io.BytesIO()
        handler = TemplateHandler("{{.Body | asText}}! {{ .RoutingKey }}", stdout)

        handler.render(delivery)

        assert stdout.getvalue() == b"hello! orders.created"

    def test_go_style_aliases_without_dot(self, delivery):
        stdout = io.BytesIO()
        handler = TemplateHandler("{{ Exchange }}/{{ DeliveryTag }}/{{ ContentType }}", stdout)

        handler.render(delivery)

        assert stdout.getvalue() == b"events/1/text/plain"

    def test_compile_error(self):
        with pytest.raises(TemplateCompileError):
            TemplateHandler("{{ body ", io.BytesIO())

    def test_undefined_name_is_render_error(self, delivery):
        handler = TemplateHandler("{{ missing }}", io.BytesIO())

        with pytest.raises(RenderError) as exc_info:
            handler.render(delivery)

        assert exc_info.value.output == "template"

    def test_undecodable_template_is_compile_error(self):
        stdin = io.TextIOWrapper(io.BytesIO(b"\xff{{ body | asText }}"), encoding="utf-8")

        with pytest.raises(TemplateCompileError):
            TemplateHandler.from_stream(stdin, io.BytesIO())

    def test_reads_template_from_stream(self, delivery):
        stdout = io.BytesIO()
        handler = TemplateHandler.from_stream(io.StringIO("[{{ body | asText }}]"), stdout)

        handler.render(delivery)

        assert stdout.getvalue() == b"[hello]"


class TestBuildHandler:
    """Test handler selection."""

    @pytest.mark.parametrize(
        "output_type, handler_type",
        [
            (OutputType.BODY, BodyHandler),
            (OutputType.DUMP, DumpHandler),
            (OutputType.JSON, JsonHandler),
        ],
    )
    def test_selects_variant(self, output_type, handler_type):
        handler = build_handler(output_type, stdout=io.BytesIO())
        assert isinstance(handler, handler_type)
        assert handler.output_type == output_type

    def test_template_variant_reads_stdin(self):
        handler = build_handler(
            OutputType.TEMPLATE, stdout=io.BytesIO(), stdin=io.StringIO("{{ body }}")
        )
        assert isinstance(handler, TemplateHandler)

    def test_template_compile_error_surfaces_at_build(self):
        with pytest.raises(TemplateCompileError):
            build_handler(OutputType.TEMPLATE, stdout=io.BytesIO(), stdin=io.StringIO("{% if %}"))


class TestTranslateGoFields:
    """Test rewriting of Go-template field references."""

    @pytest.mark.parametrize(
        "source, expected",
        [
            ("{{.Body | asText}}!", "{{Body | asText}}!"),
            ("{{ .Headers.source }}", "{{ Headers.source }}"),
            ("{% if .Redelivered %}again{% endif %}", "{% if Redelivered %}again{% endif %}"),
            ("{{ delivery.Body }}", "{{ delivery.Body }}"),
            ("{{ 1.5 }}", "{{ 1.5 }}"),
            ("plain .Body text", "plain .Body text"),
        ],
    )
    def test_rewrites_only_inside_tags(self, source, expected):
        assert translate_go_fields(source) == expected
