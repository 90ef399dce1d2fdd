import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth import jwt_handler
from backend.auth.dependencies import TokenClaims, get_current_user
from backend.auth.passwords import verify_password
from backend.core.exceptions import InvalidCredentials, StoreUnavailable
from backend.database import get_db
from backend.models.user import User
from backend.routes.common import ensure_database_ready

router = APIRouter(tags=['auth'])

logger = logging.getLogger(__name__)


class LoginRequest(BaseModel):
    username: str
    password: str

    @field_validator('username')
    @classmethod
    def normalize_username(cls, value: str) -> str:
        return value.strip()


class UserResponse(BaseModel):
    id: int
    username: str
    email: str
    role: str

    class Config:
        from_attributes = True


class LoginResponse(BaseModel):
    token: str
    user: UserResponse


class CurrentUserResponse(BaseModel):
    id: str
    username: str
    role: str


def authenticate_user(username: str, password: str, db: Session) -> User:
    """Return the user matching the credentials or raise ``InvalidCredentials``.

    Unknown usernames and wrong passwords fail identically.
    """
    try:
        user = db.query(User).filter(User.username == username).first()
    except SQLAlchemyError as exc:
        logger.exception('Credential lookup failed.')
        raise StoreUnavailable() from exc

    if not verify_password(password, user.hashed_password if user else None):
        logger.info('Failed login attempt for username %r', username)
        raise InvalidCredentials()

    return user


@router.post('/login', response_model=LoginResponse)
def login(data: LoginRequest, db: Session = Depends(get_db)):
    ensure_database_ready()

    user = authenticate_user(data.username, data.password, db)
    token = jwt_handler.create_access_token(subject=str(user.id), username=user.username, role=user.role)
    logger.info('User %s logged in', user.username)

    return LoginResponse(token=token, user=UserResponse.model_validate(user))


@router.get('/me', response_model=CurrentUserResponse)
def me(current_user: TokenClaims = Depends(get_current_user)):
    return CurrentUserResponse(id=current_user.user_id, username=current_user.username, role=current_user.role)
