"""
Accord errors.
"""


class AccordError(Exception):
    """Base exception for all Accord errors."""
    pass


class ConfigurationError(AccordError):
    """Errors in account definitions."""
    pass


class MalformedKeyError(ConfigurationError):
    """An SSH public key line could not be decomposed into type, material and name."""

    def __init__(self, line: str, reason: str | None = None):
        self.line = line
        self.reason = reason
        message = f"malformed SSH key: {line!r}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class PlanError(AccordError):
    """Errors while building a resource plan."""
    pass


class DuplicateResourceError(PlanError):
    """Two nodes of the same kind share an identifier."""
    pass


class DependencyCycleError(PlanError):
    """Ordering constraints form a cycle."""
    pass


class PlanOrderingError(PlanError):
    """A node is emitted before one of its prerequisites, or requires an unknown node."""
    pass


class ApplyError(AccordError):
    """Errors preparing a plan for convergence."""
    pass
