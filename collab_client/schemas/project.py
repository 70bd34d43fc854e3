from pydantic import BaseModel


class ProjectRef(BaseModel):
    """Project a request or invitation points at."""
    id: str
    title: str = ''
    owner_id: str | None = None

    class Config:
        frozen = True


class ProjectSummary(BaseModel):
    """Project as listed by the "my projects" endpoint."""
    id: str
    title: str = ''
    owner_id: str | None = None
    status: str | None = None  # e.g. 'RECRUITING', 'IN_PROGRESS'

    class Config:
        frozen = True

    def is_owned_by(self, user_id: str) -> bool:
        return self.owner_id is not None and self.owner_id == str(user_id)
