"""Custom exceptions for the amqp-recv consumer."""


class ConfigurationError(Exception):
    """Raised when flags, environment or referenced files are invalid."""

    def __init__(self, message: str, cause: Exception | None = None):
        self.cause = cause
        super().__init__(message)


class ConnectError(Exception):
    """Raised when a connection attempt to a broker endpoint fails."""

    def __init__(self, endpoint: str, cause: Exception | None = None):
        self.endpoint = endpoint
        self.cause = cause
        super().__init__(f"Failed to connect to '{endpoint}': {cause}")


class TopologyConflict(ConnectError):
    """Raised when an existing queue or exchange has incompatible attributes."""

    def __init__(self, entity: str, reply_text: str, cause: Exception | None = None):
        self.entity = entity
        self.reply_text = reply_text
        self.cause = cause
        Exception.__init__(self, f"Topology conflict on '{entity}': {reply_text}")


class VerificationFailure(Exception):
    """Raised when a delivery payload signature cannot be verified."""

    def __init__(self, delivery_tag: int, reason: str, cause: Exception | None = None):
        self.delivery_tag = delivery_tag
        self.reason = reason
        self.cause = cause
        super().__init__(f"Delivery {delivery_tag} failed verification: {reason}")


class RenderError(Exception):
    """Raised when a delivery cannot be written to the output sink."""

    def __init__(self, output: str, cause: Exception | None = None):
        self.output = output
        self.cause = cause
        super().__init__(f"Failed to render delivery as '{output}': {cause}")


class TemplateCompileError(RenderError):
    """Raised when the output template cannot be compiled."""

    def __init__(self, cause: Exception | None = None):
        self.output = "template"
        self.cause = cause
        Exception.__init__(self, f"Failed to compile template: {cause}")
