"""
Togglekit error hierarchy.

Every error here is a recoverable, caller-facing condition. Nothing is
retried implicitly.
"""

from typing import Iterable


class TogglekitError(Exception):
    """Base class for all togglekit errors."""


class FeatureNotFound(TogglekitError):
    """No feature matched the identifiers and/or filters sent."""

    def __init__(
        self,
        message: str = "No features found matching identifiers and/or filters sent",
    ):
        super().__init__(message)


class AssignablesNotFound(TogglekitError):
    """The candidate population of a bulk operation is empty."""

    def __init__(self, assignable_type: str):
        self.assignable_type = assignable_type
        super().__init__(f"No {assignable_type} found matching features and filters sent")


class BulkToggleFailed(TogglekitError):
    """
    The transactional write of a bulk toggle failed.

    Raised after the transaction was rolled back; the storage error is
    chained as ``__cause__``.
    """

    def __init__(
        self,
        message: str = "Bulk toggle operation failed",
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.cause = cause


class ConfigurationError(TogglekitError):
    """The dependency configuration is unreadable or malformed."""


class DependencyCycleError(ConfigurationError):
    """The dependency configuration contains a cycle."""

    def __init__(self, cycle: Iterable[str]):
        self.cycle = list(cycle)
        super().__init__(f"Cyclic feature dependency: {' -> '.join(self.cycle)}")


class DependencyMissing(TogglekitError):
    """An assignable is missing a feature required by another feature."""

    def __init__(self, feature: str, required: str):
        self.feature = feature
        self.required = required
        super().__init__(f"Feature '{feature}' is missing dependency: '{required}'")


class InvalidFeatureAttribute(TogglekitError):
    """An unknown attribute was given for a Feature."""

    def __init__(self, attr: str):
        self.attr = attr
        super().__init__(f"The attribute '{attr}' is not valid for Feature")


class UnknownAssignableType(TogglekitError):
    """An assignable type name is not present in the registry."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Assignable type '{name}' is not registered")
