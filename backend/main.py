import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from backend.core import config
from backend.database import ensure_database_schema
from backend.routes import (
    appointment_routes,
    auth_routes,
    contact_routes,
    dashboard_routes,
    surgery_slot_routes,
)

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)

config.validate_runtime_config()

app = FastAPI(title='Clinic Admin API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

logger = logging.getLogger(__name__)


@app.exception_handler(RequestValidationError)
async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    messages = []
    for error in exc.errors():
        location = '.'.join(str(part) for part in error.get('loc', ()) if part != 'body')
        message = str(error.get('msg', 'Invalid value.')).removeprefix('Value error, ')
        messages.append(f'{location}: {message}' if location else message)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={'detail': '; '.join(messages) or 'Invalid request.'},
    )


@app.on_event('startup')
def initialize_database() -> None:
    try:
        ensure_database_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@app.get('/')
def root():
    return {'status': 'Clinic Admin API Running'}


app.include_router(auth_routes.router, prefix='/api/auth')
app.include_router(contact_routes.public_router, prefix='/api/public')
app.include_router(contact_routes.router, prefix='/api/contacts')
app.include_router(appointment_routes.router, prefix='/api/appointments')
app.include_router(surgery_slot_routes.router, prefix='/api/surgery-slots')
app.include_router(dashboard_routes.router, prefix='/api/dashboard')
