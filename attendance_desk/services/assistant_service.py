from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.orm import Session

from attendance_desk.config import Settings
from attendance_desk.core.errors import ConflictError, NotFoundError, ValidationError
from attendance_desk.core.phone import mask_phone
from attendance_desk.models import Assistant, Role
from attendance_desk.services.auth_service import hash_password


logger = logging.getLogger(__name__)

ALLOWED_ROLES = {Role.ADMIN.value, Role.ASSISTANT.value}


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ''


def _normalize_role(role: Any) -> str:
    role_value = _text(role).lower()
    if role_value not in ALLOWED_ROLES:
        raise ValidationError('Role must be one of: admin, assistant')
    return role_value


def public_view(assistant: Assistant) -> dict[str, Any]:
    return {
        'id': assistant.id,
        'name': assistant.name,
        'phone': assistant.phone,
        'role': assistant.role,
    }


def _load(db: Session, assistant_id: str) -> Assistant:
    row = db.query(Assistant).filter(Assistant.id == assistant_id).first()
    if not row:
        raise NotFoundError('Assistant not found')
    return row


def list_assistants(db: Session) -> list[dict[str, Any]]:
    rows = db.query(Assistant).order_by(Assistant.pk.asc()).all()
    return [public_view(row) for row in rows]


def get_assistant(db: Session, assistant_id: str) -> dict[str, Any]:
    return public_view(_load(db, assistant_id))


def create_assistant(db: Session, payload: dict[str, Any]) -> Assistant:
    fields = {key: _text(payload.get(key)) for key in ('id', 'name', 'phone', 'password', 'role')}
    if not all(fields.values()):
        raise ValidationError('All fields are required')
    role = _normalize_role(fields['role'])
    if db.query(Assistant).filter(Assistant.id == fields['id']).first():
        raise ConflictError('Assistant ID already exists')

    row = Assistant(
        id=fields['id'],
        name=fields['name'],
        phone=fields['phone'],
        password_hash=hash_password(payload['password']),
        role=role,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info('assistant_created assistant_id=%s role=%s phone=%s', row.id, row.role, mask_phone(row.phone))
    return row


def update_assistant(db: Session, assistant_id: str, payload: dict[str, Any]) -> Assistant:
    update: dict[str, Any] = {}
    for field in ('name', 'phone'):
        if _text(payload.get(field)):
            update[field] = _text(payload[field])
    if _text(payload.get('role')):
        update['role'] = _normalize_role(payload['role'])
    if _text(payload.get('password')):
        update['password_hash'] = hash_password(payload['password'])

    new_id = _text(payload.get('id'))
    if new_id and new_id != assistant_id:
        if db.query(Assistant).filter(Assistant.id == new_id).first():
            raise ConflictError('Assistant ID already exists')
        update['id'] = new_id

    if not update:
        raise ValidationError('No valid fields to update')

    row = _load(db, assistant_id)
    for field, value in update.items():
        setattr(row, field, value)
    db.commit()
    db.refresh(row)
    logger.info(
        'assistant_updated assistant_id=%s previous_id=%s fields=%s',
        row.id,
        assistant_id,
        ','.join(sorted('password' if key == 'password_hash' else key for key in update)),
    )
    return row


def delete_assistant(db: Session, assistant_id: str) -> None:
    row = _load(db, assistant_id)
    db.delete(row)
    db.commit()
    logger.info('assistant_deleted assistant_id=%s', assistant_id)


def ensure_default_admin(db: Session, settings: Settings) -> dict[str, Any]:
    if db.query(Assistant).count() > 0:
        return {'seeded': False, 'reason': 'assistants_not_empty'}
    if not (settings.default_admin_password or '').strip():
        logger.warning('default_admin_seed_skipped missing_default_admin_password')
        return {'seeded': False, 'reason': 'no_password'}

    row = Assistant(
        id=settings.default_admin_id,
        name=settings.default_admin_name,
        phone='',
        password_hash=hash_password(settings.default_admin_password),
        role=Role.ADMIN.value,
    )
    db.add(row)
    db.commit()
    logger.warning('Default admin created - change its password after setup (assistant_id=%s)', row.id)
    return {'seeded': True, 'assistant_id': row.id}
