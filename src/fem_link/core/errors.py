"""
Error taxonomy for fem-link.

- ConfigurationError: invalid element definition (dimension, directions, sizes).
- GeometryError: degenerate element orientation found while attaching to a domain.
- CorruptDataError: a packed element record does not match its declared sizes.
- UnsupportedOperation: request the element cannot honour (inertial loads on a
  massless element).
"""


class LinkError(Exception):
    """Base class for all fem-link errors."""


class ConfigurationError(LinkError, ValueError):
    """Raised when an element is constructed or attached with invalid parameters."""


class GeometryError(LinkError, ValueError):
    """Raised when node geometry and orientation hints cannot define local axes."""


class CorruptDataError(LinkError, ValueError):
    """Raised when a serialized element record is unreadable or inconsistent."""


class UnsupportedOperation(LinkError, NotImplementedError):
    """Raised for operations that do not apply to this element (e.g. inertia loads)."""
