import logging
import sys

from pythonjsonlogger import jsonlogger

LOGGER_NAMESPACE = "amqp_recv"


def setup_logging(quiet: bool = False, stream=None) -> logging.Logger:
    """
    Configures structured JSON logging for the consumer.

    Log records are written to stderr so that standard output stays reserved
    for rendered messages. The formatter includes timestamp, level, logger
    name and message; the logger name carries the component tag
    (e.g. ``amqp_recv.broker``).

    Args:
        quiet: Suppress all log output.
        stream: Optional stream override, defaults to ``sys.stderr``.

    Returns:
        logging.Logger: The configured root logger instance.
    """
    root_logger = logging.getLogger()
    root_logger.handlers = []

    if quiet:
        root_logger.addHandler(logging.NullHandler())
        root_logger.setLevel(logging.CRITICAL + 1)
    else:
        formatter = jsonlogger.JsonFormatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s"
        )
        stream_handler = logging.StreamHandler(stream or sys.stderr)
        stream_handler.setFormatter(formatter)
        root_logger.addHandler(stream_handler)
        root_logger.setLevel(logging.INFO)

    # connection failures are reported once, by the connection manager
    logging.getLogger("pika").setLevel(logging.CRITICAL)

    return root_logger


def get_logger(component: str) -> logging.Logger:
    """Returns the component-tagged logger injected into each collaborator."""
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{component}")
