"""Output handlers that render one delivery to standard output."""

import logging
import pprint
import re
import sys
from abc import ABC, abstractmethod
from typing import BinaryIO, TextIO

from jinja2 import Environment, StrictUndefined, TemplateSyntaxError
from pydantic_core import PydanticSerializationError

from amqp_recv.domain import Delivery, OutputType
from amqp_recv.exceptions import RenderError, TemplateCompileError
from amqp_recv.handlers.template_helpers import camelcase, register_helpers
from amqp_recv.logging import get_logger

_TEMPLATE_TAG = re.compile(r"\{\{.*?\}\}|\{%.*?%\}", re.DOTALL)
_GO_FIELD = re.compile(r"(?<![\w.)\]])\.([A-Z]\w*)")


def translate_go_fields(source: str) -> str:
    """Rewrites Go-template field references such as ``{{.Body}}`` to ``{{Body}}``."""
    return _TEMPLATE_TAG.sub(lambda match: _GO_FIELD.sub(r"\1", match.group(0)), source)


class OutputHandler(ABC):
    """Renders a single delivery to a binary output stream."""

    output_type: OutputType

    def __init__(self, stdout: BinaryIO, logger: logging.Logger | None = None):
        self._stdout = stdout
        self._logger = logger or get_logger("output")

    @abstractmethod
    def render(self, delivery: Delivery) -> None:
        """
        Writes the delivery to the output stream.

        Args:
            delivery: The delivery to render.

        Raises:
            RenderError: If rendering or writing fails.
        """
        pass

    def _write(self, data: bytes) -> None:
        try:
            self._stdout.write(data)
            self._stdout.flush()
        except (OSError, ValueError) as e:
            raise RenderError(self.output_type.value, cause=e) from e


class BodyHandler(OutputHandler):
    """Writes the raw body bytes verbatim."""

    output_type = OutputType.BODY

    def render(self, delivery: Delivery) -> None:
        self._write(delivery.body)


class DumpHandler(OutputHandler):
    """Writes a human-readable structural dump of the whole delivery."""

    output_type = OutputType.DUMP

    def render(self, delivery: Delivery) -> None:
        kind = f"{type(delivery).__module__}.{type(delivery).__name__}"
        try:
            text = f"({kind}) {pprint.pformat(delivery.model_dump(), sort_dicts=False)}\n"
        except Exception as e:
            self._logger.warning("Structured dump failed, using repr", extra={"error": str(e)})
            text = f"{delivery!r}\n"
        self._write(text.encode("utf-8"))


class JsonHandler(OutputHandler):
    """Writes the delivery as indented JSON; bytes are base64 encoded."""

    output_type = OutputType.JSON

    def render(self, delivery: Delivery) -> None:
        try:
            document = delivery.model_dump_json(indent=2)
        except PydanticSerializationError as e:
            raise RenderError(self.output_type.value, cause=e) from e
        self._write(f"{document}\n".encode("utf-8"))


class TemplateHandler(OutputHandler):
    """
    Renders the delivery through a Jinja2 template.

    The template sees every Delivery field by name (``body``, ``headers``,
    ``routing_key``, ...), under its Go-style alias (``Body``, ``RoutingKey``)
    and the ``delivery`` object itself. Go-template references like
    ``{{.Body}}`` are rewritten to the alias. Undefined names are errors.
    """

    output_type = OutputType.TEMPLATE

    def __init__(self, source: str, stdout: BinaryIO, logger: logging.Logger | None = None):
        super().__init__(stdout, logger)
        environment = register_helpers(
            Environment(
                undefined=StrictUndefined,
                keep_trailing_newline=True,
                autoescape=False,
            )
        )
        try:
            self._template = environment.from_string(translate_go_fields(source))
        except TemplateSyntaxError as e:
            raise TemplateCompileError(cause=e) from e

    @classmethod
    def from_stream(
        cls, stdin: TextIO, stdout: BinaryIO, logger: logging.Logger | None = None
    ) -> "TemplateHandler":
        """Reads the whole template from ``stdin`` and compiles it."""
        logger = logger or get_logger("output")
        logger.info("Reading template from stdin")
        try:
            source = stdin.read()
        except OSError as e:
            raise RenderError(OutputType.TEMPLATE.value, cause=e) from e
        except UnicodeDecodeError as e:
            raise TemplateCompileError(cause=e) from e
        return cls(source, stdout, logger)

    def render(self, delivery: Delivery) -> None:
        context = {name: getattr(delivery, name) for name in type(delivery).model_fields}
        context.update({camelcase(name): value for name, value in list(context.items())})
        context["delivery"] = delivery
        try:
            text = self._template.render(**context)
        except Exception as e:
            raise RenderError(self.output_type.value, cause=e) from e
        self._write(text.encode("utf-8"))


def build_handler(
    output_type: OutputType,
    stdout: BinaryIO | None = None,
    stdin: TextIO | None = None,
    logger: logging.Logger | None = None,
) -> OutputHandler:
    """
    Selects the handler variant for the configured output type.

    The template variant reads and compiles its template here, so compile
    errors surface before any broker connection is attempted.
    """
    stdout = stdout or sys.stdout.buffer
    if output_type == OutputType.TEMPLATE:
        return TemplateHandler.from_stream(stdin or sys.stdin, stdout, logger)

    handlers: dict[OutputType, type[OutputHandler]] = {
        OutputType.BODY: BodyHandler,
        OutputType.DUMP: DumpHandler,
        OutputType.JSON: JsonHandler,
    }
    return handlers[OutputType(output_type)](stdout, logger)
