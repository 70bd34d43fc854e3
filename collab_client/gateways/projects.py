"""ProjectGateway over the platform REST API."""
from collab_client.gateways.base import ApiClient
from collab_client.gateways.normalize import to_project_summary
from collab_client.schemas.project import ProjectSummary


class HttpProjectGateway:
    def __init__(self, api: ApiClient):
        self.api = api

    async def list_mine(self) -> list[ProjectSummary]:
        """Projects the current user owns or belongs to."""
        operation = 'projects.list_mine'
        records = await self.api.get_collection(operation, '/projects/my')
        return [to_project_summary(operation, r) for r in records]
