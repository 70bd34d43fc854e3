import asyncio
from collections import defaultdict

import pytest
from httpx import AsyncClient, ASGITransport

from collab_client.errors import GatewayError
from collab_client.gateways.base import ApiClient
from collab_client.main import app
from collab_client.routes.deps import get_api_client, get_engine
from collab_client.schemas.invitation import Invitation, InvitationDecision, InvitationStatus
from collab_client.schemas.join_request import JoinRequest, JoinRequestStatus
from collab_client.schemas.project import ProjectRef, ProjectSummary
from collab_client.schemas.user import UserRef
from collab_client.services.reconciliation_service import ReconciliationEngine


class Gate:
    """Holds one gateway call until released."""

    def __init__(self):
        self.entered = asyncio.Event()
        self.release = asyncio.Event()


class FakeBackend:
    """In-memory platform as seen by one signed-in user.

    Results are computed when a call starts, before any gate, so a held
    call returns the data of the moment it was issued.
    """

    def __init__(self, user_id: str = 'u1'):
        self.user_id = user_id
        self.projects: dict[str, ProjectSummary] = {}
        self.my_project_ids: list[str] = []
        self.join_requests: dict[str, JoinRequest] = {}
        self.invitations: dict[str, Invitation] = {}
        self.failures: dict[str, Exception] = {}
        self.misreports: dict[str, object] = {}
        self.gates: dict[str, list[Gate]] = defaultdict(list)
        self.calls: list[str] = []
        self._next_id = 1000

    # ── Seeding ───────────────────────────────────────────────────────────────

    def add_project(self, project_id: str, owner_id: str, mine: bool = True) -> ProjectSummary:
        project = ProjectSummary(
            id=project_id, title=f'Project {project_id}', owner_id=owner_id, status='RECRUITING',
        )
        self.projects[project_id] = project
        if mine:
            self.my_project_ids.append(project_id)
        return project

    def add_join_request(
        self,
        request_id: str,
        requester_id: str,
        project_id: str,
        status: JoinRequestStatus = JoinRequestStatus.PENDING,
        owner_id: str | None = 'project',
    ) -> JoinRequest:
        project = self.projects[project_id]
        request = JoinRequest(
            id=request_id,
            user=UserRef(id=requester_id, display_name=f'User {requester_id}'),
            project=ProjectRef(
                id=project.id,
                title=project.title,
                owner_id=project.owner_id if owner_id == 'project' else owner_id,
            ),
            message='I would like to help',
            status=status,
        )
        self.join_requests[request_id] = request
        return request

    def add_invitation(
        self,
        invitation_id: str,
        project_id: str,
        status: InvitationStatus = InvitationStatus.PENDING,
        invited_user_id: str | None = None,
    ) -> Invitation:
        project = self.projects[project_id]
        invitation = Invitation(
            id=invitation_id,
            invited_by=UserRef(id=project.owner_id, display_name=f'User {project.owner_id}'),
            invited_user=UserRef(id=invited_user_id or self.user_id),
            project=ProjectRef(id=project.id, title=project.title, owner_id=project.owner_id),
            role='DEVELOPER',
            status=status,
        )
        self.invitations[invitation_id] = invitation
        return invitation

    # ── Behaviour hooks ───────────────────────────────────────────────────────

    def fail(self, operation: str, error: Exception | None = None):
        self.failures[operation] = error or GatewayError(operation, 'HTTP 500: boom')

    def misreport(self, operation: str, status):
        """Make a mutation answer with this status instead of the real one."""
        self.misreports[operation] = status

    def hold(self, operation: str) -> Gate:
        gate = Gate()
        self.gates[operation].append(gate)
        return gate

    def call_count(self, operation: str) -> int:
        return self.calls.count(operation)

    async def answer(self, operation: str, result):
        self.calls.append(operation)
        error = self.failures.get(operation)
        if error:
            raise error
        queue = self.gates.get(operation)
        if queue:
            gate = queue.pop(0)
            gate.entered.set()
            await gate.release.wait()
        return result

    def new_id(self) -> str:
        self._next_id += 1
        return f'r{self._next_id}'


class FakeJoinRequestGateway:
    def __init__(self, backend: FakeBackend):
        self.backend = backend

    async def list_mine(self):
        b = self.backend
        result = [r for r in b.join_requests.values() if r.user and r.user.id == b.user_id]
        return await b.answer('join_requests.list_mine', result)

    async def list_for_project(self, project_id):
        b = self.backend
        result = [r for r in b.join_requests.values() if r.project.id == project_id]
        return await b.answer(f'join_requests.list_for_project:{project_id}', result)

    async def create(self, project_id, message=None):
        b = self.backend
        project = b.projects[project_id]
        request = JoinRequest(
            id=b.new_id(),
            user=UserRef(id=b.user_id, display_name=f'User {b.user_id}'),
            project=ProjectRef(id=project.id, title=project.title, owner_id=project.owner_id),
            message=message,
            status=JoinRequestStatus.PENDING,
        )
        await b.answer('join_requests.create', None)
        b.join_requests[request.id] = request
        return request

    async def accept(self, request_id):
        return await self._transition('join_requests.accept', request_id, JoinRequestStatus.ACCEPTED)

    async def reject(self, request_id):
        return await self._transition('join_requests.reject', request_id, JoinRequestStatus.REJECTED)

    async def cancel(self, request_id):
        return await self._transition('join_requests.cancel', request_id, JoinRequestStatus.CANCELED)

    async def _transition(self, operation, request_id, status):
        b = self.backend
        await b.answer(operation, None)
        request = b.join_requests.get(request_id)
        if request is None:
            raise GatewayError(operation, 'HTTP 404: Join request not found')
        if request.status.is_terminal:
            raise GatewayError(operation, f'HTTP 409: Join request already {request.status.value}')
        if operation in b.misreports:
            return request.model_copy(update={'status': b.misreports[operation]})
        updated = request.model_copy(update={'status': status})
        b.join_requests[request_id] = updated
        return updated


class FakeInvitationGateway:
    def __init__(self, backend: FakeBackend):
        self.backend = backend

    async def list_received(self):
        b = self.backend
        result = [
            i for i in b.invitations.values()
            if i.invited_user and i.invited_user.id == b.user_id
        ]
        return await b.answer('invitations.list_received', result)

    async def respond(self, invitation_id, decision: InvitationDecision):
        b = self.backend
        operation = 'invitations.respond'
        await b.answer(operation, None)
        invitation = b.invitations.get(invitation_id)
        if invitation is None:
            raise GatewayError(operation, 'HTTP 404: Invitation not found')
        if invitation.status.is_terminal:
            raise GatewayError(operation, f'HTTP 409: Invitation already {invitation.status.value}')
        if operation in b.misreports:
            return invitation.model_copy(update={'status': b.misreports[operation]})
        updated = invitation.model_copy(update={'status': decision.outcome})
        b.invitations[invitation_id] = updated
        return updated


class FakeProjectGateway:
    def __init__(self, backend: FakeBackend):
        self.backend = backend

    async def list_mine(self):
        b = self.backend
        result = [b.projects[pid] for pid in b.my_project_ids]
        return await b.answer('projects.list_mine', result)


def make_engine(backend: FakeBackend, user_id: str | None = None, timeout: float = 1.0):
    return ReconciliationEngine(
        join_requests=FakeJoinRequestGateway(backend),
        invitations=FakeInvitationGateway(backend),
        projects=FakeProjectGateway(backend),
        user_id=user_id,
        timeout=timeout,
    )


@pytest.fixture
def backend():
    """u1 owns p1-p3, is a plain member of p4, and has requests on both sides.

    Pending for u1 to answer: r1, r2 and invitation i1 (3 in total).
    """
    b = FakeBackend('u1')
    b.add_project('p1', 'u1')
    b.add_project('p2', 'u1')
    b.add_project('p3', 'u1')
    b.add_project('p4', 'u9')
    b.add_project('p5', 'u7', mine=False)
    b.add_project('p6', 'u8', mine=False)
    b.add_project('p7', 'u8', mine=False)

    b.add_join_request('r1', 'u2', 'p1')
    b.add_join_request('r2', 'u3', 'p2')
    b.add_join_request('r3', 'u4', 'p3', status=JoinRequestStatus.ACCEPTED)
    b.add_join_request('r4', 'u5', 'p4')  # not u1's project
    b.add_join_request('r-sent', 'u1', 'p5')

    b.add_invitation('i1', 'p6')
    b.add_invitation('i2', 'p7', status=InvitationStatus.DECLINED)
    b.add_invitation('i3', 'p7', invited_user_id='u2')  # someone else's
    return b


@pytest.fixture
def engine(backend):
    return make_engine(backend, user_id='u1')


@pytest.fixture
async def client(engine):
    """Async HTTP client over the app, wired to the in-memory engine."""
    api = ApiClient(base_url='http://platform.test/api')
    app.dependency_overrides[get_engine] = lambda: engine
    app.dependency_overrides[get_api_client] = lambda: api
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac
    app.dependency_overrides.clear()
    await api.aclose()
