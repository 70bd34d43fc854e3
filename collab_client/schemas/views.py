from typing import Annotated

from pydantic import BaseModel, Field

from collab_client.schemas.invitation import Invitation, InvitationDecision
from collab_client.schemas.join_request import JoinRequest, JoinRequestDecision
from collab_client.schemas.state import ActionResult, ReconciledState, RequestAggregates

# Either item type, told apart by its `kind`
RequestItem = Annotated[JoinRequest | Invitation, Field(discriminator='kind')]


class TabView(BaseModel):
    """Everything one requests tab renders."""
    title: str
    pending: list[RequestItem]
    history: list[RequestItem]
    badge: int
    total: int
    loading: bool = False
    error: str | None = None
    retryable: bool = False
    warnings: list[str] = []


class SessionCreate(BaseModel):
    """Identity handed over by the authentication layer."""
    user_id: str | int
    access_token: str | None = None


class InvitationResponseCreate(BaseModel):
    decision: InvitationDecision


class JoinRequestCreate(BaseModel):
    project_id: str | int
    message: str | None = Field(None, max_length=1000)


class JoinRequestResponseCreate(BaseModel):
    decision: JoinRequestDecision


class ActionResponse(BaseModel):
    """ActionResult as sent over HTTP: failures are values, not error statuses."""
    ok: bool
    item: RequestItem | None = None
    refreshed: bool = False
    error_kind: str | None = None
    error: str | None = None

    @classmethod
    def from_result(cls, result: ActionResult) -> 'ActionResponse':
        return cls(
            ok=result.ok,
            item=result.item,
            refreshed=result.refreshed,
            error_kind=result.error_kind,
            error=result.message,
        )


class RequestsResponse(BaseModel):
    """Current snapshot plus derived aggregates and diagnostics."""
    state: ReconciledState
    aggregates: RequestAggregates
    loading: bool
    error: str | None = None
    warnings: list[str] = []
    warning_count: int = 0
    protocol_violations: int = 0
