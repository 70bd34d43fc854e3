"""Request & invitation reconciliation.

Sources (all pull-based):
  - sent join requests      JoinRequestGateway.list_mine
  - received invitations    InvitationGateway.list_received
  - received join requests  JoinRequestGateway.list_for_project, once per owned project

Plan per synchronize:
  phase 1: sent, invitations and "my projects" start together
  phase 2: as soon as "my projects" resolves, one fetch per owned project, concurrently

The result is published as a single ReconciledState replacement, and only
when it belongs to the most recently started synchronize. Mutations call
the gateway and then re-synchronize in full instead of patching locally.
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, Iterable

from collab_client.config import settings
from collab_client.errors import (
    AggregationError,
    GatewayError,
    PartialFetchWarning,
    PreconditionError,
    ProtocolError,
    ReconciliationError,
)
from collab_client.gateways.base import InvitationGateway, JoinRequestGateway, ProjectGateway
from collab_client.schemas.invitation import Invitation, InvitationDecision
from collab_client.schemas.join_request import JoinRequest, JoinRequestDecision, JoinRequestStatus
from collab_client.schemas.project import ProjectSummary
from collab_client.schemas.state import ActionResult, ReconciledState, RequestAggregates
from collab_client.services.aggregates import compute_aggregates
from collab_client.services.subscriptions import Subscriber, SubscriptionManager

logger = logging.getLogger(__name__)


def unique_by_id(items: Iterable) -> tuple:
    """Drop repeated ids, first occurrence wins."""
    seen = set()
    kept = []
    for item in items:
        if item.id in seen:
            continue
        seen.add(item.id)
        kept.append(item)
    return tuple(kept)


class ReconciliationEngine:
    """Single writer of the ReconciledState of the signed-in user."""

    def __init__(
        self,
        join_requests: JoinRequestGateway,
        invitations: InvitationGateway,
        projects: ProjectGateway,
        user_id: str | None = None,
        timeout: float | None = None,
    ):
        self.join_requests = join_requests
        self.invitations = invitations
        self.projects = projects
        self.timeout = timeout if timeout is not None else settings.gateway_timeout_seconds
        self.user_id = str(user_id) if user_id is not None else None
        self.subscriptions = SubscriptionManager()

        self._state = ReconciledState(user_id=self.user_id)
        self._generation = 0
        self._in_flight = 0

        # Diagnostics
        self.last_error: ReconciliationError | None = None
        self.warnings: list[PartialFetchWarning] = []
        self.warning_count = 0
        self.protocol_violations = 0

    # ── Read side ─────────────────────────────────────────────────────────────

    @property
    def state(self) -> ReconciledState:
        return self._state

    @property
    def aggregates(self) -> RequestAggregates:
        return compute_aggregates(self._state)

    @property
    def loading(self) -> bool:
        return self._in_flight > 0

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        return self.subscriptions.subscribe(callback)

    # ── Identity ──────────────────────────────────────────────────────────────

    async def sign_in(self, user_id: str) -> ActionResult:
        """Adopt a new identity and load its requests."""
        user_id = str(user_id)
        if user_id != self.user_id:
            self._reset(user_id)
        return await self.refresh()

    async def sign_out(self):
        self._reset(None)
        state = self._state
        await self.subscriptions.broadcast(state, is_current=lambda: state is self._state)

    def _reset(self, user_id: str | None):
        # A new generation makes every in-flight synchronize stale
        self._generation += 1
        self.user_id = user_id
        self._state = ReconciledState(user_id=user_id, generation=self._generation)
        self.last_error = None
        self.warnings = []
        logger.info(f'Session identity changed to {user_id!r}')

    # ── Synchronize ───────────────────────────────────────────────────────────

    async def synchronize(self, user_id: str | None = None) -> ReconciledState | None:
        """Rebuild the whole state for a user.

        Returns the published state, or None when a newer synchronize was
        started meanwhile (the result, success or failure, is discarded).
        Raises PreconditionError without an identity and AggregationError
        when one of the top-level fetches fails; the previous state stays.
        """
        if user_id is None:
            user_id = self.user_id
        if user_id is None:
            raise PreconditionError('No authenticated user: sign in before synchronizing')
        user_id = str(user_id)

        self._generation += 1
        token = self._generation
        self._in_flight += 1
        try:
            state, warnings = await self._reconcile(user_id, token)
        except AggregationError as e:
            if token != self._generation:
                logger.debug(f'Discarding failed synchronize #{token}: superseded by #{self._generation}')
                return None
            self.last_error = e
            logger.error(f'Synchronize #{token} failed: {e}', exc_info=True)
            raise
        finally:
            self._in_flight -= 1

        if token != self._generation:
            logger.debug(f'Discarding synchronize #{token}: superseded by #{self._generation}')
            return None

        self._publish(state, warnings)
        await self.subscriptions.broadcast(state, is_current=lambda: state is self._state)
        return state

    async def refresh(self) -> ActionResult:
        """View-facing synchronize for the current identity. Never raises."""
        try:
            state = await self.synchronize()
        except ReconciliationError as e:
            return ActionResult.failure(e)
        return ActionResult(ok=True, refreshed=state is not None)

    async def _call(self, operation: str, func: Callable[..., Awaitable], *args):
        """Run one gateway call under the timeout; any failure becomes a GatewayError."""
        try:
            return await asyncio.wait_for(func(*args), timeout=self.timeout)
        except GatewayError:
            raise
        except asyncio.TimeoutError as e:
            raise GatewayError(operation, f'timed out after {self.timeout}s') from e
        except Exception as e:
            raise GatewayError(operation, e) from e

    async def _reconcile(self, user_id: str, token: int) -> tuple[ReconciledState, list[PartialFetchWarning]]:
        results = await asyncio.gather(
            self._call('join_requests.list_mine', self.join_requests.list_mine),
            self._call('invitations.list_received', self.invitations.list_received),
            self._load_received_join_requests(user_id),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, asyncio.CancelledError):
                raise result
        errors = [r for r in results if isinstance(r, GatewayError)]
        if errors:
            raise AggregationError(errors)
        for result in results:
            # Anything else escaping the gather is a bug, not a gateway failure
            if isinstance(result, BaseException):
                raise result

        sent, invitations, (owned_ids, received, warnings) = results
        state = ReconciledState(
            user_id=user_id,
            sent_join_requests=unique_by_id(sent),
            received_invitations=unique_by_id(invitations),
            received_join_requests=unique_by_id(received),
            owned_project_ids=owned_ids,
            generation=token,
            synced_at=datetime.now(timezone.utc),
        )
        return state, warnings

    async def _load_received_join_requests(
        self, user_id: str,
    ) -> tuple[tuple[str, ...], list[JoinRequest], list[PartialFetchWarning]]:
        projects = await self._call('projects.list_mine', self.projects.list_mine)
        owned = unique_by_id(p for p in projects if p.is_owned_by(user_id))
        if not owned:
            return (), [], []

        results = await asyncio.gather(
            *(
                self._call('join_requests.list_for_project', self.join_requests.list_for_project, p.id)
                for p in owned
            ),
            return_exceptions=True,
        )

        received: list[JoinRequest] = []
        warnings: list[PartialFetchWarning] = []
        for project, result in zip(owned, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, GatewayError):
                # One broken project must not blank the whole received view
                warning = PartialFetchWarning(project.id, result)
                logger.warning(str(warning))
                warnings.append(warning)
                continue
            if isinstance(result, BaseException):
                raise result
            for request in result:
                scoped = self._scope_to_owner(request, project, user_id)
                if scoped is None:
                    warning = PartialFetchWarning(
                        project.id, f'request {request.id} belongs to another owner',
                    )
                    logger.warning(str(warning))
                    warnings.append(warning)
                    continue
                received.append(scoped)

        return tuple(p.id for p in owned), received, warnings

    @staticmethod
    def _scope_to_owner(request: JoinRequest, project: ProjectSummary, user_id: str) -> JoinRequest | None:
        """Stamp the owner on requests that omit it; refuse other owners' requests."""
        if request.project.owner_id is None:
            project_ref = request.project.model_copy(update={'owner_id': user_id})
            if not project_ref.title:
                project_ref = project_ref.model_copy(update={'title': project.title})
            return request.model_copy(update={'project': project_ref})
        if request.project.owner_id != user_id:
            return None
        return request

    def _publish(self, state: ReconciledState, warnings: list[PartialFetchWarning]):
        if self._state.user_id == state.user_id:
            self._check_terminal_states(self._state, state)
        self._state = state
        self.warnings = warnings
        self.warning_count += len(warnings)
        self.last_error = None
        logger.info(
            f'Synchronized #{state.generation} for user {state.user_id}: '
            f'{len(state.sent_join_requests)} sent, '
            f'{len(state.received_invitations)} invitations, '
            f'{len(state.received_join_requests)} received over {len(state.owned_project_ids)} projects, '
            f'{state.pending_count} pending, {len(warnings)} warnings'
        )

    def _check_terminal_states(self, previous: ReconciledState, current: ReconciledState):
        """Count items the server reports as leaving a terminal status."""
        collections = (
            ('sent join request', previous.sent_join_requests, current.sent_join_requests),
            ('invitation', previous.received_invitations, current.received_invitations),
            ('received join request', previous.received_join_requests, current.received_join_requests),
        )
        for label, before, after in collections:
            terminal = {item.id: item.status for item in before if item.status.is_terminal}
            for item in after:
                old_status = terminal.get(item.id)
                if old_status is not None and item.status != old_status:
                    self.protocol_violations += 1
                    logger.warning(
                        f'Protocol violation: {label} {item.id} moved from terminal '
                        f'{old_status.value} to {item.status.value}'
                    )

    # ── Mutations ─────────────────────────────────────────────────────────────

    async def respond_to_invitation(self, invitation_id: str, decision: InvitationDecision | str) -> ActionResult:
        invitation_id = str(invitation_id)
        try:
            decision = InvitationDecision(decision)
        except ValueError:
            return ActionResult.failure(PreconditionError(f'Unknown invitation decision {decision!r}'))

        known = self._find(self._state.received_invitations, invitation_id)
        if known is not None and known.status.is_terminal:
            return ActionResult.failure(
                PreconditionError(f'Invitation {invitation_id} is already {known.status.value}')
            )
        return await self._mutate(
            'invitations.respond',
            lambda: self.invitations.respond(invitation_id, decision),
            expected=decision.outcome,
        )

    async def respond_to_join_request(self, request_id: str, decision: JoinRequestDecision | str) -> ActionResult:
        request_id = str(request_id)
        try:
            decision = JoinRequestDecision(decision)
        except ValueError:
            return ActionResult.failure(PreconditionError(f'Unknown join request decision {decision!r}'))

        known = self._find(self._state.received_join_requests, request_id)
        if known is not None and known.status.is_terminal:
            return ActionResult.failure(
                PreconditionError(f'Join request {request_id} is already {known.status.value}')
            )
        if decision is JoinRequestDecision.ACCEPT:
            return await self._mutate(
                'join_requests.accept',
                lambda: self.join_requests.accept(request_id),
                expected=decision.outcome,
            )
        return await self._mutate(
            'join_requests.reject',
            lambda: self.join_requests.reject(request_id),
            expected=decision.outcome,
        )

    async def cancel_sent_join_request(self, request_id: str) -> ActionResult:
        """Withdraw one of the current user's own pending requests."""
        request_id = str(request_id)
        if self.user_id is not None:
            known = self._find(self._state.sent_join_requests, request_id)
            if known is None:
                return ActionResult.failure(
                    PreconditionError(f'Join request {request_id} is not one of your sent requests')
                )
            if known.status.is_terminal:
                return ActionResult.failure(
                    PreconditionError(f'Join request {request_id} is already {known.status.value}')
                )
        return await self._mutate(
            'join_requests.cancel',
            lambda: self.join_requests.cancel(request_id),
            expected=JoinRequestStatus.CANCELED,
        )

    async def submit_join_request(self, project_id: str, message: str | None = None) -> ActionResult:
        project_id = str(project_id).strip()
        if not project_id:
            return ActionResult.failure(PreconditionError('A project id is required'))
        if project_id in self._state.owned_project_ids:
            return ActionResult.failure(
                PreconditionError(f'Project {project_id} is yours: owners cannot request to join')
            )
        message = message.strip() if message else None
        return await self._mutate(
            'join_requests.create',
            lambda: self.join_requests.create(project_id, message or None),
            expected=JoinRequestStatus.PENDING,
        )

    @staticmethod
    def _find(items: Iterable, item_id: str):
        return next((item for item in items if item.id == item_id), None)

    async def _mutate(self, operation: str, call: Callable[[], Awaitable], expected) -> ActionResult:
        """Run a gateway mutation, then re-synchronize in full.

        The state is untouched on failure; the error comes back as a value.
        """
        if self.user_id is None:
            return ActionResult.failure(PreconditionError(f'{operation}: no authenticated user'))

        try:
            item = await self._call(operation, call)
            if not isinstance(item, (JoinRequest, Invitation)):
                raise ProtocolError(operation, f'unexpected response {type(item).__name__}')
            if item.status != expected:
                raise ProtocolError(
                    operation, f'expected status {expected.value}, got {item.status.value}'
                )
        except GatewayError as e:
            logger.warning(f'{operation} failed: {e}')
            return ActionResult.failure(e)

        logger.info(f'{operation} succeeded for {item.id} ({item.status.value})')
        refreshed = await self._resync(operation)
        return ActionResult.success(item, refreshed=refreshed)

    async def _resync(self, operation: str) -> bool:
        try:
            published = await self.synchronize()
        except ReconciliationError as e:
            logger.warning(f'Resync after {operation} failed: {e}')
            return False
        return published is not None
