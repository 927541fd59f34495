from __future__ import annotations

import base64
import hashlib
import hmac
import json
import logging
import secrets
from dataclasses import dataclass

from sqlalchemy.orm import Session

from attendance_desk.config import Settings, settings as default_settings
from attendance_desk.core.errors import AuthError, ValidationError
from attendance_desk.core.time_provider import TimeProvider, default_time_provider
from attendance_desk.models import Assistant


logger = logging.getLogger(__name__)

_PBKDF2_ITERATIONS = 120000


@dataclass(frozen=True)
class CallerIdentity:
    assistant_id: str
    name: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == 'admin'


def hash_password(password: str) -> str:
    if not (password or '').strip():
        raise ValidationError('Password is required')
    salt = secrets.token_hex(16)
    derived = hashlib.pbkdf2_hmac('sha256', password.encode('utf-8'), salt.encode('utf-8'), _PBKDF2_ITERATIONS)
    return f'pbkdf2_sha256${_PBKDF2_ITERATIONS}${salt}${derived.hex()}'


def verify_password(password: str, password_hash: str) -> bool:
    try:
        algo, iter_raw, salt, digest_hex = (password_hash or '').split('$', 3)
    except ValueError:
        return False
    if algo != 'pbkdf2_sha256' or not iter_raw.isdigit():
        return False
    derived = hashlib.pbkdf2_hmac('sha256', (password or '').encode('utf-8'), salt.encode('utf-8'), int(iter_raw)).hex()
    return hmac.compare_digest(derived, digest_hex)


def _b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode('ascii').rstrip('=')


def _b64url_decode(value: str) -> bytes:
    padding = '=' * (-len(value) % 4)
    return base64.urlsafe_b64decode((value + padding).encode('ascii'))


def _sign(secret: str, signing_input: bytes) -> bytes:
    return hmac.new(secret.encode('utf-8'), signing_input, hashlib.sha256).digest()


def encode_token(payload: dict, *, secret: str) -> str:
    header = {'alg': 'HS256', 'typ': 'JWT'}
    header_part = _b64url_encode(json.dumps(header, separators=(',', ':')).encode('utf-8'))
    payload_part = _b64url_encode(json.dumps(payload, separators=(',', ':')).encode('utf-8'))
    signing_input = f'{header_part}.{payload_part}'.encode('ascii')
    return f'{header_part}.{payload_part}.{_b64url_encode(_sign(secret, signing_input))}'


def decode_token(token: str, *, secret: str, now_ts: int) -> dict | None:
    """Verified payload, or None when the token is malformed, forged or expired."""
    try:
        header_part, payload_part, signature_part = token.split('.')
        provided_signature = _b64url_decode(signature_part)
        signing_input = f'{header_part}.{payload_part}'.encode('ascii')
    except (ValueError, UnicodeEncodeError):
        return None

    if not hmac.compare_digest(provided_signature, _sign(secret, signing_input)):
        return None

    try:
        payload = json.loads(_b64url_decode(payload_part).decode('utf-8'))
    except (ValueError, UnicodeDecodeError):
        return None
    if not isinstance(payload, dict):
        return None

    exp = payload.get('exp')
    if not isinstance(exp, int) or exp <= now_ts:
        return None
    return payload


def issue_token(
    assistant: Assistant,
    *,
    settings: Settings = default_settings,
    time_provider: TimeProvider = default_time_provider,
) -> str:
    issued_at = time_provider.utc_timestamp()
    return encode_token(
        {
            'assistant_id': assistant.id,
            'name': assistant.name,
            'role': assistant.role,
            'iat': issued_at,
            'exp': issued_at + int(settings.token_ttl_minutes) * 60,
        },
        secret=settings.jwt_secret,
    )


def login(
    db: Session,
    assistant_id: str | None,
    password: str | None,
    *,
    settings: Settings = default_settings,
    time_provider: TimeProvider = default_time_provider,
) -> dict:
    if not assistant_id or not password:
        raise ValidationError('assistant_id and password required')

    assistant = db.query(Assistant).filter(Assistant.id == assistant_id).first()
    if not assistant:
        logger.info('auth_login_failed reason=user_not_found')
        raise AuthError('user_not_found')
    if not verify_password(password, assistant.password_hash):
        logger.info('auth_login_failed reason=wrong_password assistant_id=%s', assistant.id)
        raise AuthError('wrong_password')

    token = issue_token(assistant, settings=settings, time_provider=time_provider)
    logger.info('auth_login_success assistant_id=%s role=%s', assistant.id, assistant.role)
    return {'token': token}


def validate_token(
    token: str | None,
    *,
    settings: Settings = default_settings,
    time_provider: TimeProvider = default_time_provider,
) -> CallerIdentity | None:
    if not token:
        return None
    payload = decode_token(token, secret=settings.jwt_secret, now_ts=time_provider.utc_timestamp())
    if not payload:
        return None
    assistant_id = payload.get('assistant_id')
    role = str(payload.get('role') or '').strip().lower()
    if not assistant_id or not role:
        return None
    return CallerIdentity(assistant_id=str(assistant_id), name=str(payload.get('name') or ''), role=role)
