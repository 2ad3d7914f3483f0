class SchemaException(Exception):
    """Raised when a raw schema tree is malformed or cannot be compiled."""


class CycleException(SchemaException):
    """Raised when a reference cycle cannot be broken with deferred bindings."""


class EmitException(SchemaException):
    """Raised when resolved entities cannot be emitted as modules."""


class RetrievalException(Exception):
    """Raised when the raw schema tree for a version cannot be retrieved."""
