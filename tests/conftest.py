import os
from unittest.mock import MagicMock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')
os.environ.setdefault('JWT_SECRET_KEY', 'test-secret')

from backend import database  # noqa: E402
from backend.auth.dependencies import TokenClaims  # noqa: E402
from backend.create_admin import create_user  # noqa: E402
from backend.database import Base  # noqa: E402
from backend.models import appointment, contact, surgery_slot, user  # noqa: E402,F401


@pytest.fixture(autouse=True)
def skip_schema_bootstrap(monkeypatch: pytest.MonkeyPatch) -> None:
    # Handlers run against the per-test engine below, never the configured one.
    monkeypatch.setattr(database, '_schema_checked', True)


@pytest.fixture
def db_session():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    db = testing_session_local()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def admin_user(db_session):
    return create_user(db_session, 'admin', 'admin@clinic.example', 'secret', role='admin')


@pytest.fixture
def admin_claims() -> TokenClaims:
    return TokenClaims(user_id='1', username='admin', role='admin')


@pytest.fixture
def staff_claims() -> TokenClaims:
    return TokenClaims(user_id='2', username='reception', role='staff')


@pytest.fixture
def fail_commits(db_session, monkeypatch: pytest.MonkeyPatch):
    """Make every later ``commit`` on ``db_session`` fail and spy on ``rollback``."""

    def install() -> MagicMock:
        def commit() -> None:
            raise OperationalError('COMMIT', {}, Exception('database is locked'))

        rollback = MagicMock(wraps=db_session.rollback)
        monkeypatch.setattr(db_session, 'commit', commit)
        monkeypatch.setattr(db_session, 'rollback', rollback)
        return rollback

    return install
