from fastapi import Request

from collab_client.gateways.base import ApiClient
from collab_client.services.reconciliation_service import ReconciliationEngine


def get_engine(request: Request) -> ReconciliationEngine:
    return request.app.state.engine


def get_api_client(request: Request) -> ApiClient:
    return request.app.state.api
