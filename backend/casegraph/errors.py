"""
Error taxonomy of the relationship network engine.

Builder and layout problems never abort rendering: they are recorded as
`DataIntegrityWarning` entries and logged. Mutation problems always
abort the operation and are raised as `NetworkError` subclasses.
"""
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class DataIntegrityWarning:
    """A relationship record dropped while building the graph."""

    # dangling_reference | malformed_relationship | malformed_entity
    # | duplicate_edge | duplicate_entity
    kind: str
    message: str
    source: Optional[str] = None
    target: Optional[str] = None


class NetworkError(RuntimeError):
    """Base class for errors surfaced to the initiating UI action."""

    error_code = "network_error"
    retryable = False


class ValidationError(NetworkError):
    """Relationship type not allowed for the entity pair, or an unresolved reference."""

    error_code = "validation_error"


class NotFoundError(NetworkError):
    """Delete target does not resolve to a stored relationship."""

    error_code = "not_found"


class PartialWriteError(NetworkError):
    """The second leg of a two-sided connection write failed.

    `compensated` tells whether the first leg was rolled back. The
    operation can be retried either way.
    """

    error_code = "partial_write"
    retryable = True

    def __init__(
        self,
        operation: str,
        source: str,
        target: str,
        detail: str,
        compensated: bool,
    ) -> None:
        self.operation = operation
        self.source = source
        self.target = target
        self.detail = detail
        self.compensated = compensated
        state = "rolled back" if compensated else "left inconsistent"
        super().__init__(
            f"{operation} {source} -> {target}: mirrored write failed ({detail}); "
            f"first write {state}"
        )
