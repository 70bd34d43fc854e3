"""JoinRequestGateway over the platform REST API."""
from collab_client.gateways.base import ApiClient, unwrap_item, wire_id
from collab_client.gateways.normalize import to_join_request
from collab_client.schemas.join_request import JoinRequest


class HttpJoinRequestGateway:
    """Join requests: the current user's sent ones and those received per owned project."""

    def __init__(self, api: ApiClient):
        self.api = api

    async def list_mine(self) -> list[JoinRequest]:
        operation = 'join_requests.list_mine'
        records = await self.api.get_collection(operation, '/join-requests/my')
        return [to_join_request(operation, r) for r in records]

    async def list_for_project(self, project_id: str) -> list[JoinRequest]:
        operation = 'join_requests.list_for_project'
        records = await self.api.get_collection(operation, f'/join-requests/project/{project_id}')
        return [to_join_request(operation, r) for r in records]

    async def create(self, project_id: str, message: str | None = None) -> JoinRequest:
        operation = 'join_requests.create'
        body = {'projectId': wire_id(project_id)}
        if message:
            body['message'] = message
        payload = await self.api.request(operation, 'POST', '/join-requests', json=body)
        return to_join_request(operation, unwrap_item(operation, payload))

    async def accept(self, request_id: str) -> JoinRequest:
        return await self._transition('accept', request_id)

    async def reject(self, request_id: str) -> JoinRequest:
        return await self._transition('reject', request_id)

    async def cancel(self, request_id: str) -> JoinRequest:
        return await self._transition('cancel', request_id)

    async def _transition(self, action: str, request_id: str) -> JoinRequest:
        operation = f'join_requests.{action}'
        payload = await self.api.request(operation, 'PUT', f'/join-requests/{request_id}/{action}')
        return to_join_request(operation, unwrap_item(operation, payload))
