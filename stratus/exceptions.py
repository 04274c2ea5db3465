class StratusError(Exception):
    """Base class for every error raised by Stratus."""


class ValidationError(StratusError, ValueError):
    """Raised when a definition is malformed or missing required fields."""


class ExportError(StratusError):
    """Raised when a permission grant or mapping cannot be turned into resources."""


class ProvisioningError(StratusError):
    """Raised when a remote call fails while provisioning the API object graph."""

    def __init__(self, stage: str, message: str):
        self.stage = stage
        super().__init__(f"{stage} failed: {message}")


class IgnorableProvisioningError(ProvisioningError):
    """A remote failure whose desired end state already holds."""


class TeardownError(StratusError):
    """Raised when deleting remote state fails. Only ever logged."""
