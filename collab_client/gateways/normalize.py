"""Map raw API records onto the fixed JoinRequest / Invitation / ProjectSummary shapes.

The platform is not consistent: ids come as numbers or strings, invitations
carry `invitationId` or `id`, timestamps are `createdAt` or `invitedAt`,
owners appear as `owner.id` or `ownerId`. All of that is settled here so
the engine never sniffs shapes.
"""
from enum import Enum
from typing import Any

from pydantic import ValidationError

from collab_client.errors import GatewayError
from collab_client.schemas.invitation import Invitation, InvitationStatus
from collab_client.schemas.join_request import JoinRequest, JoinRequestStatus
from collab_client.schemas.project import ProjectSummary

# Alternate spellings seen on the wire
JOIN_REQUEST_STATUS_ALIASES = {'CANCELLED': 'CANCELED', 'APPROVED': 'ACCEPTED'}
INVITATION_STATUS_ALIASES = {'REJECTED': 'DECLINED'}


def first(raw: dict, *keys: str) -> Any:
    """Value of the first key present and not None."""
    for key in keys:
        value = raw.get(key)
        if value is not None:
            return value
    return None


def as_id(value: Any) -> str | None:
    return None if value is None else str(value)


def display_name(raw: dict) -> str:
    parts = [raw.get('firstName'), raw.get('lastName')]
    name = ' '.join(p.strip() for p in parts if isinstance(p, str) and p.strip())
    if name:
        return name
    for key in ('name', 'fullName', 'username', 'email'):
        value = raw.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ''


def user_ref(raw: Any) -> dict | None:
    if not isinstance(raw, dict):
        return None
    user_id = as_id(first(raw, 'id', 'userId'))
    if user_id is None:
        return None
    return {'id': user_id, 'display_name': display_name(raw), 'email': raw.get('email')}


def owner_id(raw: dict) -> str | None:
    owner = raw.get('owner')
    if isinstance(owner, dict) and owner.get('id') is not None:
        return as_id(owner['id'])
    return as_id(raw.get('ownerId'))


def project_ref(record: dict) -> dict:
    """Nested `project` object, or flat projectId/projectTitle fields."""
    project = record.get('project')
    if isinstance(project, dict):
        return {
            'id': as_id(first(project, 'id', 'projectId')),
            'title': first(project, 'title', 'name') or '',
            'owner_id': owner_id(project),
        }
    return {
        'id': as_id(record.get('projectId')),
        'title': first(record, 'projectTitle', 'projectName') or '',
        'owner_id': as_id(record.get('projectOwnerId')),
    }


def parse_status(operation: str, status_enum: type[Enum], value: Any, aliases: dict | None = None):
    """Case-insensitive status parse. Unknown values are a malformed payload."""
    if not isinstance(value, str):
        raise GatewayError(operation, 'Malformed payload: missing status')
    key = value.strip().upper()
    key = (aliases or {}).get(key, key)
    try:
        return status_enum(key)
    except ValueError as e:
        raise GatewayError(operation, f'Malformed payload: unknown status {value!r}') from e


def timestamp(value: Any) -> Any:
    # Leave ISO strings and epoch numbers to pydantic, drop anything else
    return value if isinstance(value, (str, int, float)) else None


def to_join_request(operation: str, record: dict) -> JoinRequest:
    data = {
        'id': as_id(first(record, 'id', 'requestId')),
        'user': user_ref(first(record, 'user', 'requester')),
        'project': project_ref(record),
        'message': record.get('message') or None,
        'status': parse_status(
            operation, JoinRequestStatus, record.get('status'), JOIN_REQUEST_STATUS_ALIASES,
        ),
        'created_at': timestamp(first(record, 'createdAt', 'requestedAt')),
    }
    try:
        return JoinRequest.model_validate(data)
    except ValidationError as e:
        raise GatewayError(operation, f'Malformed join request: {e.error_count()} invalid field(s)') from e


def to_invitation(operation: str, record: dict) -> Invitation:
    data = {
        'id': as_id(first(record, 'invitationId', 'id')),
        'invited_by': user_ref(first(record, 'invitedBy', 'inviter')),
        'invited_user': user_ref(first(record, 'invitedUser', 'invitee')),
        'project': project_ref(record),
        'role': record.get('role') or 'MEMBER',
        'message': record.get('message') or None,
        'status': parse_status(
            operation, InvitationStatus, record.get('status'), INVITATION_STATUS_ALIASES,
        ),
        'created_at': timestamp(first(record, 'createdAt', 'invitedAt')),
    }
    try:
        return Invitation.model_validate(data)
    except ValidationError as e:
        raise GatewayError(operation, f'Malformed invitation: {e.error_count()} invalid field(s)') from e


def to_project_summary(operation: str, record: dict) -> ProjectSummary:
    data = {
        'id': as_id(first(record, 'id', 'projectId')),
        'title': first(record, 'title', 'name') or '',
        'owner_id': owner_id(record),
        'status': record.get('status'),
    }
    try:
        return ProjectSummary.model_validate(data)
    except ValidationError as e:
        raise GatewayError(operation, f'Malformed project: {e.error_count()} invalid field(s)') from e
