"""Requests & invitations endpoints consumed by the requests page."""
from fastapi import APIRouter, Depends, HTTPException

from collab_client.routes.deps import get_engine
from collab_client.schemas.views import (
    ActionResponse,
    InvitationResponseCreate,
    JoinRequestCreate,
    JoinRequestResponseCreate,
    RequestsResponse,
    TabView,
)
from collab_client.services.reconciliation_service import ReconciliationEngine
from collab_client.services.tab_views import TABS

router = APIRouter()


@router.get('', response_model=RequestsResponse)
async def get_requests(engine: ReconciliationEngine = Depends(get_engine)):
    """Last published snapshot with its aggregates. Never triggers a fetch."""
    return RequestsResponse(
        state=engine.state,
        aggregates=engine.aggregates,
        loading=engine.loading,
        error=str(engine.last_error) if engine.last_error else None,
        warnings=[str(w) for w in engine.warnings],
        warning_count=engine.warning_count,
        protocol_violations=engine.protocol_violations,
    )


@router.get('/tabs/{tab}', response_model=TabView)
async def get_tab(tab: str, engine: ReconciliationEngine = Depends(get_engine)):
    """One tab of the requests page: invitations, project-requests, received, sent."""
    tab_class = TABS.get(tab)
    if not tab_class:
        raise HTTPException(status_code=404, detail='Unknown tab')
    return tab_class(engine).view()


@router.post('/refresh', response_model=ActionResponse)
async def refresh(engine: ReconciliationEngine = Depends(get_engine)):
    result = await engine.refresh()
    return ActionResponse.from_result(result)


@router.post('/invitations/{invitation_id}/respond', response_model=ActionResponse)
async def respond_to_invitation(
    invitation_id: str,
    data: InvitationResponseCreate,
    engine: ReconciliationEngine = Depends(get_engine),
):
    """Accept or decline an invitation, then re-synchronize."""
    result = await engine.respond_to_invitation(invitation_id, data.decision)
    return ActionResponse.from_result(result)


@router.post('/join-requests', response_model=ActionResponse)
async def submit_join_request(
    data: JoinRequestCreate,
    engine: ReconciliationEngine = Depends(get_engine),
):
    """Ask to join a project."""
    result = await engine.submit_join_request(str(data.project_id), data.message)
    return ActionResponse.from_result(result)


@router.post('/join-requests/{request_id}/respond', response_model=ActionResponse)
async def respond_to_join_request(
    request_id: str,
    data: JoinRequestResponseCreate,
    engine: ReconciliationEngine = Depends(get_engine),
):
    """Accept or reject a request to join one of the user's projects."""
    result = await engine.respond_to_join_request(request_id, data.decision)
    return ActionResponse.from_result(result)


@router.post('/join-requests/{request_id}/cancel', response_model=ActionResponse)
async def cancel_join_request(
    request_id: str,
    engine: ReconciliationEngine = Depends(get_engine),
):
    """Withdraw one of the user's own pending requests."""
    result = await engine.cancel_sent_join_request(request_id)
    return ActionResponse.from_result(result)
