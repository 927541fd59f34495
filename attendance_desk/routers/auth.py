from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from attendance_desk.config import Settings, get_settings
from attendance_desk.core.router_guard import require_admin, require_auth_user
from attendance_desk.db import get_db
from attendance_desk.request_context import EndpointLabelRoute
from attendance_desk.schemas import AssistantCreate, AssistantUpdate, LoginPayload
from attendance_desk.services import assistant_service
from attendance_desk.services.auth_service import CallerIdentity, login


router = APIRouter(prefix='/api/auth', tags=['Auth'], route_class=EndpointLabelRoute)


@router.post('/login')
def auth_login(payload: LoginPayload, db: Session = Depends(get_db), settings: Settings = Depends(get_settings)):
    return login(db, payload.assistant_id, payload.password, settings=settings)


@router.get('/me')
def auth_me(caller: CallerIdentity = Depends(require_auth_user)):
    return {'assistant_id': caller.assistant_id, 'name': caller.name, 'role': caller.role}


@router.get('/assistants')
def assistants_list(db: Session = Depends(get_db), _: CallerIdentity = Depends(require_admin)):
    return assistant_service.list_assistants(db)


@router.post('/assistants')
def assistants_create(
    payload: AssistantCreate,
    db: Session = Depends(get_db),
    _: CallerIdentity = Depends(require_admin),
):
    assistant_service.create_assistant(db, payload.model_dump())
    return {'success': True}


@router.get('/assistants/{assistant_id}')
def assistants_get(assistant_id: str, db: Session = Depends(get_db), _: CallerIdentity = Depends(require_admin)):
    return assistant_service.get_assistant(db, assistant_id)


@router.put('/assistants/{assistant_id}')
def assistants_update(
    assistant_id: str,
    payload: AssistantUpdate,
    db: Session = Depends(get_db),
    _: CallerIdentity = Depends(require_admin),
):
    assistant_service.update_assistant(db, assistant_id, payload.model_dump())
    return {'success': True}


@router.delete('/assistants/{assistant_id}')
def assistants_delete(assistant_id: str, db: Session = Depends(get_db), _: CallerIdentity = Depends(require_admin)):
    assistant_service.delete_assistant(db, assistant_id)
    return {'success': True}
