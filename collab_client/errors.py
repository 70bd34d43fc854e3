"""Error taxonomy for request & invitation reconciliation.

- PreconditionError: no identity yet, or the target is not actionable
- GatewayError: one downstream call failed (wraps operation name + cause)
- ProtocolError: the gateway answered, but the answer breaks the item lifecycle
- AggregationError: a top-level fetch of synchronize failed, state kept
- PartialFetchWarning: a per-project fetch failed, never raised
"""


def describe(cause: BaseException | str) -> str:
    """Readable message for an exception whose str() may be empty (timeouts)."""
    if isinstance(cause, BaseException):
        return str(cause) or type(cause).__name__
    return cause


class ReconciliationError(Exception):
    """Base class for reconciliation errors."""
    pass


class PreconditionError(ReconciliationError):
    """Raised when an operation is invoked before it is allowed."""
    pass


class GatewayError(ReconciliationError):
    """Raised when a single gateway call fails."""

    def __init__(self, operation: str, cause: BaseException | str):
        self.operation = operation
        self.cause = cause
        super().__init__(f'{operation} failed: {describe(cause)}')


class ProtocolError(GatewayError):
    """Raised when a gateway response contradicts the request lifecycle."""
    pass


class AggregationError(ReconciliationError):
    """Raised when synchronize cannot build a complete state."""

    def __init__(self, errors: list[GatewayError]):
        self.errors = list(errors)
        joined = '; '.join(str(e) for e in self.errors)
        super().__init__(f'Could not load requests and invitations: {joined}')


class PartialFetchWarning(UserWarning):
    """A per-project join-request fetch failed; the project counts as empty."""

    def __init__(self, project_id: str, cause: BaseException | str):
        self.project_id = project_id
        self.cause = cause
        super().__init__(f'Join requests for project {project_id} unavailable: {describe(cause)}')
