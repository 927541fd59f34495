from contextlib import asynccontextmanager
import logging
import time

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from attendance_desk.config import settings
from attendance_desk.core.errors import ServiceError
from attendance_desk.db import Base, SessionLocal, engine
from attendance_desk.metrics import flush_cache_metrics
from attendance_desk.routers import auth, students
from attendance_desk.services.assistant_service import ensure_default_admin

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s %(levelname)s %(name)s %(message)s',
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        ensure_default_admin(db, settings)
    finally:
        db.close()
    yield
    flush_cache_metrics()


app = FastAPI(title=settings.app_name, version='0.1.0', lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)


@app.middleware('http')
async def slow_request_logger(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - started) * 1000.0
    if duration_ms >= settings.metrics_slow_ms:
        logging.getLogger('attendance_desk.request').info(
            'request_slow path=%s method=%s status_code=%s duration_ms=%.2f',
            request.url.path,
            request.method,
            response.status_code,
            duration_ms,
        )
    return response


@app.exception_handler(ServiceError)
async def service_error_handler(_: Request, exc: ServiceError):
    return JSONResponse(status_code=exc.status_code, content={'error': exc.message or 'Internal server error'})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(_: Request, exc: RequestValidationError):
    first = exc.errors()[0] if exc.errors() else {}
    field = '.'.join(str(part) for part in first.get('loc', ()) if part not in ('body', 'query', 'path'))
    message = f"Invalid {field}: {first.get('msg')}" if field else 'Invalid request'
    return JSONResponse(status_code=400, content={'error': message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(_: Request, exc: StarletteHTTPException):
    message = 'Method not allowed' if exc.status_code == 405 else str(exc.detail)
    return JSONResponse(status_code=exc.status_code, content={'error': message}, headers=getattr(exc, 'headers', None))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception('request_failed path=%s method=%s', request.url.path, request.method)
    return JSONResponse(status_code=500, content={'error': 'Internal server error'})


app.include_router(auth.router)
app.include_router(students.router)


@app.get('/health')
def healthcheck():
    return {'status': 'ok'}
