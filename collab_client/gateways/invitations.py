"""InvitationGateway over the platform REST API."""
from collab_client.gateways.base import ApiClient, unwrap_item
from collab_client.gateways.normalize import to_invitation
from collab_client.schemas.invitation import Invitation, InvitationDecision


class HttpInvitationGateway:
    def __init__(self, api: ApiClient):
        self.api = api

    async def list_received(self) -> list[Invitation]:
        operation = 'invitations.list_received'
        records = await self.api.get_collection(operation, '/teams/invitations')
        return [to_invitation(operation, r) for r in records]

    async def respond(self, invitation_id: str, decision: InvitationDecision) -> Invitation:
        """Answer an invitation; the server expects the resulting status."""
        operation = 'invitations.respond'
        payload = await self.api.request(
            operation, 'PUT', f'/teams/invitations/{invitation_id}/respond',
            json={'response': decision.outcome.value},
        )
        return to_invitation(operation, unwrap_item(operation, payload))
