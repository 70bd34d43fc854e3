from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel

from collab_client.schemas.user import UserRef
from collab_client.schemas.project import ProjectRef


class InvitationStatus(str, Enum):
    PENDING = 'PENDING'
    ACCEPTED = 'ACCEPTED'
    DECLINED = 'DECLINED'

    @property
    def is_terminal(self) -> bool:
        return self is not InvitationStatus.PENDING


class InvitationDecision(str, Enum):
    """Invited user's answer to an invitation."""
    ACCEPT = 'ACCEPT'
    DECLINE = 'DECLINE'

    @property
    def outcome(self) -> InvitationStatus:
        if self is InvitationDecision.ACCEPT:
            return InvitationStatus.ACCEPTED
        return InvitationStatus.DECLINED


class Invitation(BaseModel):
    """A project owner or admin inviting the current user to a team."""
    kind: Literal['invitation'] = 'invitation'
    id: str
    invited_by: UserRef | None = None
    invited_user: UserRef | None = None
    project: ProjectRef
    role: str = 'MEMBER'
    message: str | None = None
    status: InvitationStatus
    created_at: datetime | None = None

    class Config:
        frozen = True

    @property
    def is_pending(self) -> bool:
        return self.status is InvitationStatus.PENDING
