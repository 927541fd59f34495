from __future__ import annotations

from fastapi import Depends, Request

from attendance_desk.config import Settings, get_settings
from attendance_desk.core.errors import AuthError, ForbiddenError
from attendance_desk.services.auth_service import CallerIdentity, validate_token


def _resolve_bearer(request: Request) -> str | None:
    authorization = request.headers.get('authorization', '')
    if not authorization.lower().startswith('bearer '):
        return None
    token = authorization[7:].strip()
    return token or None


def require_auth_user(request: Request, settings: Settings = Depends(get_settings)) -> CallerIdentity:
    token = _resolve_bearer(request)
    if not token:
        raise AuthError('Unauthorized')
    caller = validate_token(token, settings=settings)
    if caller is None:
        raise AuthError('Invalid token')
    request.state.caller = caller
    return caller


def require_admin(caller: CallerIdentity = Depends(require_auth_user)) -> CallerIdentity:
    if not caller.is_admin:
        raise ForbiddenError('Forbidden: Admins only')
    return caller
