from collab_client.schemas.user import UserRef
from collab_client.schemas.project import ProjectRef, ProjectSummary
from collab_client.schemas.join_request import JoinRequest, JoinRequestStatus, JoinRequestDecision
from collab_client.schemas.invitation import Invitation, InvitationStatus, InvitationDecision
from collab_client.schemas.state import ReconciledState, RequestAggregates, ActionResult

__all__ = [
    'UserRef',
    'ProjectRef',
    'ProjectSummary',
    'JoinRequest',
    'JoinRequestStatus',
    'JoinRequestDecision',
    'Invitation',
    'InvitationStatus',
    'InvitationDecision',
    'ReconciledState',
    'RequestAggregates',
    'ActionResult',
]
