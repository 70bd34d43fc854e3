import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from collab_client.config import settings
from collab_client.gateways import (
    ApiClient,
    HttpInvitationGateway,
    HttpJoinRequestGateway,
    HttpProjectGateway,
)
from collab_client.routes import requests, session
from collab_client.services.reconciliation_service import ReconciliationEngine

logging.basicConfig(
    level=settings.log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the shared API client and the engine, close the client on exit."""
    api = ApiClient()
    app.state.api = api
    app.state.engine = ReconciliationEngine(
        join_requests=HttpJoinRequestGateway(api),
        invitations=HttpInvitationGateway(api),
        projects=HttpProjectGateway(api),
    )
    yield
    await api.aclose()


app = FastAPI(
    title='Collab Requests',
    description='Requests & invitations reconciliation for the collaboration platform client',
    version='0.1.0',
    lifespan=lifespan,
)

# CORS for the web client
app.add_middleware(
    CORSMiddleware,
    allow_origins=['*'],
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

# Routes
app.include_router(session.router, prefix='/api/session', tags=['session'])
app.include_router(requests.router, prefix='/api/requests', tags=['requests'])


@app.get('/health')
async def health_check():
    """Health check endpoint."""
    return {'status': 'ok', 'service': 'collab-requests'}
