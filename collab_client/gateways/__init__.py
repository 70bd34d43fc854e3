from collab_client.gateways.base import (
    ApiClient,
    InvitationGateway,
    JoinRequestGateway,
    ProjectGateway,
)
from collab_client.gateways.invitations import HttpInvitationGateway
from collab_client.gateways.join_requests import HttpJoinRequestGateway
from collab_client.gateways.projects import HttpProjectGateway

__all__ = [
    'ApiClient',
    'InvitationGateway',
    'JoinRequestGateway',
    'ProjectGateway',
    'HttpInvitationGateway',
    'HttpJoinRequestGateway',
    'HttpProjectGateway',
]
