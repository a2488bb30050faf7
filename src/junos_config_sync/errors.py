"""Error taxonomy shared by the compiler, parser, allocators and transactions."""
from typing import Optional


class JunosConfigError(Exception):
    """Base class for every error raised by the sync engine.

    The resource identifier and the offending field (or device command) are
    kept as attributes and folded into the message so user-visible failures
    always say what they are about.
    """

    def __init__(
        self,
        message: str,
        resource: Optional[str] = None,
        field: Optional[str] = None,
    ):
        self.message = message
        self.resource = resource
        self.field = field
        super().__init__(self._render())

    def _render(self) -> str:
        context = []
        if self.resource:
            context.append(f"resource={self.resource}")
        if self.field:
            context.append(f"field={self.field}")
        if context:
            return f"{self.message} ({', '.join(context)})"
        return self.message


class StructuralConstraintViolation(JunosConfigError):
    """Caller input that cannot be compiled (wrong field for the interface class, etc.)."""


class ConflictingOptions(StructuralConstraintViolation):
    """Two mutually exclusive options were both set."""


class MalformedDeviceOutput(JunosConfigError):
    """Device output does not match an expected pattern."""


class AllocationExhausted(JunosConfigError):
    """No free identifier left in a scarce namespace."""


class LockAcquisitionStalled(JunosConfigError):
    """The lock wait was cancelled or ran out of its configured attempts."""


class DeviceRejected(JunosConfigError):
    """The device refused a batch. ``messages`` holds the rpc-error texts."""

    def __init__(
        self,
        message: str,
        resource: Optional[str] = None,
        field: Optional[str] = None,
        messages: Optional[list[str]] = None,
    ):
        self.messages = messages or []
        super().__init__(message, resource, field)

    def _render(self) -> str:
        base = super()._render()
        if self.messages:
            return base + ": " + "; ".join(self.messages)
        return base


class ApplyRejected(DeviceRejected):
    """load-configuration returned errors."""


class ValidationFailed(DeviceRejected):
    """commit check failed."""


class CommitFailed(DeviceRejected):
    """commit failed."""


class PostCommitDivergence(JunosConfigError):
    """Commit succeeded but the device state read back disagrees."""


class ResourceExists(JunosConfigError):
    """Create found the object already configured."""


class ResourceNotFound(JunosConfigError):
    """An object or one of its dependencies does not exist on the device."""


class IncompatibleDevice(JunosConfigError):
    """The resource is not supported on this platform."""


class ChannelError(JunosConfigError):
    """Transport failure or an rpc-error reply to a read command."""
