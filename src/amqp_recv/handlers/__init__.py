"""Output handler exports."""

from amqp_recv.handlers.output_handlers import (
    BodyHandler,
    DumpHandler,
    JsonHandler,
    OutputHandler,
    TemplateHandler,
    build_handler,
)

__all__ = [
    "BodyHandler",
    "DumpHandler",
    "JsonHandler",
    "OutputHandler",
    "TemplateHandler",
    "build_handler",
]
