"""Domain layer exports."""

from amqp_recv.domain.models import Delivery, ExchangeKind, OutputType, Topology

__all__ = ["Delivery", "ExchangeKind", "OutputType", "Topology"]
