"""Exception hierarchy for VirtConsole."""

from typing import Optional


class ConsoleError(Exception):
    """Base class for all VirtConsole errors."""


class ConfigError(ConsoleError):
    """Configuration file or flag could not be loaded or validated."""


class InventoryError(ConsoleError):
    """The VM inventory could not be retrieved."""


class NoInventoryError(ConsoleError):
    """A session was started without any inventory."""


class FilterError(ConsoleError):
    """A search filter could not be parsed."""


class RemoteOperationError(ConsoleError):
    """A call against the control plane failed."""

    def __init__(self, operation: str, vm_name: Optional[str], cause: BaseException):
        self.operation = operation
        self.vm_name = vm_name
        self.cause = cause
        target = f" on '{vm_name}'" if vm_name else ""
        super().__init__(f"{operation} failed{target}: {cause}")
