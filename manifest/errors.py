"""Exceptions raised while reading or applying an application manifest."""


class ManifestError(Exception):
    """Raised when a manifest cannot be read or fails validation."""
    pass


class RouteConflictError(ManifestError):
    """Raised when two triggers declare the same route."""
    pass


class VariableError(ManifestError):
    """Raised when a variable is undeclared or a required one has no value."""
    pass
