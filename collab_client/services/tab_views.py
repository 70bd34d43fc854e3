"""View adapters for the requests page tabs.

Each tab reads the engine's current snapshot and forwards user actions to
the engine's mutation wrappers. Tabs never hold or patch state of their own.
"""
from abc import ABC, abstractmethod

from collab_client.errors import AggregationError
from collab_client.schemas.invitation import InvitationDecision
from collab_client.schemas.join_request import JoinRequest, JoinRequestDecision
from collab_client.schemas.state import ActionResult, ReconciledState
from collab_client.schemas.views import TabView
from collab_client.services.aggregates import partition
from collab_client.services.reconciliation_service import ReconciliationEngine


class RequestsTab(ABC):
    title = ''

    def __init__(self, engine: ReconciliationEngine):
        self.engine = engine

    @abstractmethod
    def items(self, state: ReconciledState) -> tuple:
        """Items this tab lists, in display order."""

    def badge(self, pending: list) -> int:
        return len(pending)

    def view(self) -> TabView:
        items = self.items(self.engine.state)
        pending, history = partition(items)
        error = self.engine.last_error
        return TabView(
            title=self.title,
            pending=pending,
            history=history,
            badge=self.badge(pending),
            total=len(items),
            loading=self.engine.loading,
            error=str(error) if error else None,
            retryable=isinstance(error, AggregationError),
            warnings=[str(w) for w in self.engine.warnings],
        )

    async def retry(self) -> ActionResult:
        return await self.engine.refresh()


class InvitationsTab(RequestsTab):
    """Invitations from project owners addressed to the user."""
    title = 'My Invitations'

    def items(self, state: ReconciledState) -> tuple:
        return state.received_invitations

    async def accept(self, invitation_id: str) -> ActionResult:
        return await self.engine.respond_to_invitation(invitation_id, InvitationDecision.ACCEPT)

    async def decline(self, invitation_id: str) -> ActionResult:
        return await self.engine.respond_to_invitation(invitation_id, InvitationDecision.DECLINE)


class ProjectRequestsTab(RequestsTab):
    """People asking to join the projects the user owns."""
    title = 'Project Requests'

    def items(self, state: ReconciledState) -> tuple:
        return state.received_join_requests

    async def accept(self, request_id: str) -> ActionResult:
        return await self.engine.respond_to_join_request(request_id, JoinRequestDecision.ACCEPT)

    async def reject(self, request_id: str) -> ActionResult:
        return await self.engine.respond_to_join_request(request_id, JoinRequestDecision.REJECT)


class ReceivedRequestsTab(RequestsTab):
    """Combined inbox: received join requests first, then invitations."""
    title = 'Received'

    def items(self, state: ReconciledState) -> tuple:
        return state.received_join_requests + state.received_invitations

    async def accept_invitation(self, invitation_id: str) -> ActionResult:
        return await self.engine.respond_to_invitation(invitation_id, InvitationDecision.ACCEPT)

    async def decline_invitation(self, invitation_id: str) -> ActionResult:
        return await self.engine.respond_to_invitation(invitation_id, InvitationDecision.DECLINE)

    async def accept_join_request(self, request_id: str) -> ActionResult:
        return await self.engine.respond_to_join_request(request_id, JoinRequestDecision.ACCEPT)

    async def reject_join_request(self, request_id: str) -> ActionResult:
        return await self.engine.respond_to_join_request(request_id, JoinRequestDecision.REJECT)


class SentRequestsTab(RequestsTab):
    """Join requests the user sent. Only the receiving side gets a badge."""
    title = 'Sent Requests'

    def items(self, state: ReconciledState) -> tuple:
        return state.sent_join_requests

    def badge(self, pending: list) -> int:
        return 0

    @staticmethod
    def can_cancel(request: JoinRequest) -> bool:
        return request.is_pending

    async def cancel(self, request_id: str) -> ActionResult:
        return await self.engine.cancel_sent_join_request(request_id)

    async def submit(self, project_id: str, message: str | None = None) -> ActionResult:
        return await self.engine.submit_join_request(project_id, message)


TABS = {
    'invitations': InvitationsTab,
    'project-requests': ProjectRequestsTab,
    'received': ReceivedRequestsTab,
    'sent': SentRequestsTab,
}
