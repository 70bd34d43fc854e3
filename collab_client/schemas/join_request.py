from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel

from collab_client.schemas.user import UserRef
from collab_client.schemas.project import ProjectRef


class JoinRequestStatus(str, Enum):
    PENDING = 'PENDING'
    ACCEPTED = 'ACCEPTED'  # Owner accepted
    REJECTED = 'REJECTED'  # Owner rejected
    CANCELED = 'CANCELED'  # Requester withdrew

    @property
    def is_terminal(self) -> bool:
        return self is not JoinRequestStatus.PENDING


class JoinRequestDecision(str, Enum):
    """Owner's answer to a received join request."""
    ACCEPT = 'ACCEPT'
    REJECT = 'REJECT'

    @property
    def outcome(self) -> JoinRequestStatus:
        if self is JoinRequestDecision.ACCEPT:
            return JoinRequestStatus.ACCEPTED
        return JoinRequestStatus.REJECTED


class JoinRequest(BaseModel):
    """A user asking to join a project."""
    kind: Literal['join-request'] = 'join-request'
    id: str
    user: UserRef | None = None  # sent lists may omit the requester
    project: ProjectRef
    message: str | None = None
    status: JoinRequestStatus
    created_at: datetime | None = None

    class Config:
        frozen = True

    @property
    def is_pending(self) -> bool:
        return self.status is JoinRequestStatus.PENDING
