"""Session endpoints: the authentication layer hands the identity over here."""
from fastapi import APIRouter, Depends

from collab_client.gateways.base import ApiClient
from collab_client.routes.deps import get_api_client, get_engine
from collab_client.schemas.views import ActionResponse, SessionCreate
from collab_client.services.reconciliation_service import ReconciliationEngine

router = APIRouter()


@router.post('', response_model=ActionResponse)
async def sign_in(
    data: SessionCreate,
    engine: ReconciliationEngine = Depends(get_engine),
    api: ApiClient = Depends(get_api_client),
):
    """Adopt the signed-in user and load their requests and invitations."""
    api.set_token(data.access_token)
    result = await engine.sign_in(str(data.user_id))
    return ActionResponse.from_result(result)


@router.delete('')
async def sign_out(
    engine: ReconciliationEngine = Depends(get_engine),
    api: ApiClient = Depends(get_api_client),
):
    """Forget the identity and clear the reconciled state."""
    api.set_token(None)
    await engine.sign_out()
    return {'status': 'signed_out'}
