from dataclasses import dataclass
from datetime import datetime
from pydantic import BaseModel, computed_field

from collab_client.errors import ReconciliationError
from collab_client.schemas.join_request import JoinRequest
from collab_client.schemas.invitation import Invitation


class ReconciledState(BaseModel):
    """One fully reconciled snapshot. Replaced as a whole, never patched."""
    user_id: str | None = None
    sent_join_requests: tuple[JoinRequest, ...] = ()
    received_invitations: tuple[Invitation, ...] = ()
    received_join_requests: tuple[JoinRequest, ...] = ()
    owned_project_ids: tuple[str, ...] = ()
    generation: int = 0
    synced_at: datetime | None = None

    class Config:
        frozen = True

    @computed_field
    @property
    def pending_count(self) -> int:
        """Pending items the user has to answer (sent requests never count)."""
        invitations = sum(1 for inv in self.received_invitations if inv.is_pending)
        join_requests = sum(1 for req in self.received_join_requests if req.is_pending)
        return invitations + join_requests


class RequestAggregates(BaseModel):
    """Derived partitions and counters of a ReconciledState."""
    pending_invitations: list[Invitation]
    responded_invitations: list[Invitation]
    pending_received_join_requests: list[JoinRequest]
    responded_received_join_requests: list[JoinRequest]
    pending_sent_join_requests: list[JoinRequest]
    closed_sent_join_requests: list[JoinRequest]
    pending_invitation_count: int
    pending_join_request_count: int
    pending_count: int
    # Projects the user is still waiting to hear back from
    awaiting_project_ids: list[str]


@dataclass(frozen=True)
class ActionResult:
    """Outcome of a view-facing engine call. Errors are values here, not raises."""
    ok: bool
    item: JoinRequest | Invitation | None = None
    error: ReconciliationError | None = None
    refreshed: bool = False

    @property
    def error_kind(self) -> str | None:
        return type(self.error).__name__ if self.error else None

    @property
    def message(self) -> str | None:
        return str(self.error) if self.error else None

    @classmethod
    def success(cls, item=None, refreshed: bool = True) -> 'ActionResult':
        return cls(ok=True, item=item, refreshed=refreshed)

    @classmethod
    def failure(cls, error: ReconciliationError) -> 'ActionResult':
        return cls(ok=False, error=error)
