from importlib.metadata import PackageNotFoundError, version

from amqp_recv.config import AppConfig, BrokerConfig, load_config
from amqp_recv.domain import Delivery, ExchangeKind, OutputType, Topology
from amqp_recv.exceptions import (
    ConfigurationError,
    ConnectError,
    RenderError,
    TemplateCompileError,
    TopologyConflict,
    VerificationFailure,
)
from amqp_recv.logging import get_logger, setup_logging

try:
    __version__ = version("amqp-recv")
except PackageNotFoundError:
    __version__ = "dev"

__all__ = [
    "__version__",
    "setup_logging",
    "get_logger",
    "load_config",
    "AppConfig",
    "BrokerConfig",
    "Delivery",
    "ExchangeKind",
    "OutputType",
    "Topology",
    "ConfigurationError",
    "ConnectError",
    "RenderError",
    "TemplateCompileError",
    "TopologyConflict",
    "VerificationFailure",
]
