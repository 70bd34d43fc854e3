"""Gateway contracts and the shared HTTP client.

The engine only sees the three Protocols below. The HTTP adapters in this
package implement them on top of ApiClient, which owns the httpx client,
the bearer token and the response envelope handling.
"""
import logging
from typing import Any, Protocol

import httpx

from collab_client.config import settings
from collab_client.errors import GatewayError
from collab_client.schemas.invitation import Invitation, InvitationDecision
from collab_client.schemas.join_request import JoinRequest
from collab_client.schemas.project import ProjectSummary

logger = logging.getLogger(__name__)

# Keys that may hold a collection, checked in this order
COLLECTION_KEYS = ('content', 'items', 'data')


class JoinRequestGateway(Protocol):
    async def list_mine(self) -> list[JoinRequest]: ...

    async def list_for_project(self, project_id: str) -> list[JoinRequest]: ...

    async def create(self, project_id: str, message: str | None = None) -> JoinRequest: ...

    async def accept(self, request_id: str) -> JoinRequest: ...

    async def reject(self, request_id: str) -> JoinRequest: ...

    async def cancel(self, request_id: str) -> JoinRequest: ...


class InvitationGateway(Protocol):
    async def list_received(self) -> list[Invitation]: ...

    async def respond(self, invitation_id: str, decision: InvitationDecision) -> Invitation: ...


class ProjectGateway(Protocol):
    async def list_mine(self) -> list[ProjectSummary]: ...


# ── Envelope handling ─────────────────────────────────────────────────────────


def _as_records(operation: str, values: list) -> list[dict]:
    if not all(isinstance(v, dict) for v in values):
        raise GatewayError(operation, 'Malformed payload: expected objects in collection')
    return values


def _has_next_page(envelope: dict) -> bool:
    """Spring-style page metadata: `last`, or `number` + `totalPages`."""
    if 'last' in envelope:
        return not envelope['last']
    number = envelope.get('number')
    total_pages = envelope.get('totalPages')
    if isinstance(number, int) and isinstance(total_pages, int):
        return number + 1 < total_pages
    return False


def unwrap_page(operation: str, payload: Any) -> tuple[list[dict], bool]:
    """Return (records, has_more) for any collection shape the API uses.

    Accepted: [..], {"data": [..]}, {"content": [..]}, {"items": [..]},
    {"data": {"content": [..]}}. An empty body counts as an empty list.
    """
    if payload is None:
        return [], False
    if isinstance(payload, list):
        return _as_records(operation, payload), False
    if isinstance(payload, dict):
        for key in COLLECTION_KEYS:
            value = payload.get(key)
            if isinstance(value, list):
                return _as_records(operation, value), _has_next_page(payload)
            if key == 'data' and isinstance(value, dict):
                return unwrap_page(operation, value)
    raise GatewayError(operation, 'Malformed payload: expected a collection')


def unwrap_item(operation: str, payload: Any) -> dict:
    """Return the single record of a mutation response, bare or under "data"."""
    if isinstance(payload, dict):
        data = payload.get('data')
        if isinstance(data, dict):
            return data
        return payload
    raise GatewayError(operation, 'Malformed payload: expected an object')


def wire_id(value: str) -> int | str:
    """Numeric ids go back to the server as numbers."""
    return int(value) if value.isdigit() else value


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200] or response.reason_phrase
    if isinstance(body, dict):
        for key in ('message', 'error', 'detail'):
            if body.get(key):
                return str(body[key])
    return response.reason_phrase


# ── HTTP client ───────────────────────────────────────────────────────────────


class ApiClient:
    """Async client for the platform REST API. Every failure is a GatewayError."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.api_base_url,
            timeout=timeout or settings.gateway_timeout_seconds,
            transport=transport,
        )
        self._token = token

    def set_token(self, token: str | None):
        """Install (or clear) the bearer token used for every call."""
        self._token = token

    async def request(
        self,
        operation: str,
        method: str,
        path: str,
        params: dict | None = None,
        json: dict | None = None,
    ) -> Any:
        headers = {'Authorization': f'Bearer {self._token}'} if self._token else {}
        try:
            response = await self._client.request(
                method, path, params=params, json=json, headers=headers,
            )
        except httpx.HTTPError as e:
            # Timeouts are httpx.TimeoutException, a subclass of HTTPError
            raise GatewayError(operation, e) from e

        if response.is_error:
            raise GatewayError(
                operation, f'HTTP {response.status_code}: {_error_message(response)}'
            )
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise GatewayError(operation, 'Malformed payload: response is not JSON') from e

    async def get_collection(self, operation: str, path: str) -> list[dict]:
        """GET every page of a collection endpoint."""
        records: list[dict] = []
        page = 0
        while True:
            payload = await self.request(
                operation, 'GET', path, params={'page': page, 'size': settings.page_size},
            )
            batch, has_more = unwrap_page(operation, payload)
            records.extend(batch)
            page += 1
            if not has_more:
                break
            if page >= settings.max_pages:
                logger.warning(f'{operation}: stopped after {page} pages')
                break
        return records

    async def aclose(self):
        await self._client.aclose()
