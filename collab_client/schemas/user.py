from pydantic import BaseModel


class UserRef(BaseModel):
    """Brief user info embedded in requests and invitations."""
    id: str
    display_name: str = ''
    email: str | None = None

    class Config:
        frozen = True
