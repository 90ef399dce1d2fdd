from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from backend.core import config


def _engine_options(url: str) -> dict:
    if url.startswith('sqlite'):
        return {'connect_args': {'check_same_thread': False}}
    return {'pool_pre_ping': True}


engine = create_engine(config.DATABASE_URL, **_engine_options(config.DATABASE_URL))

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_schema_checked = False

# Columns added after the first release, keyed by table.
COLUMN_MIGRATIONS = {
    'appointments': [
        ('notes', 'ALTER TABLE appointments ADD COLUMN notes VARCHAR'),
    ],
    'surgery_slots': [
        ('description', 'ALTER TABLE surgery_slots ADD COLUMN description VARCHAR'),
    ],
}

INDEX_STATEMENTS = [
    'CREATE INDEX IF NOT EXISTS idx_contacts_status_created ON contacts(status, created_at)',
    'CREATE INDEX IF NOT EXISTS idx_appointments_date_status ON appointments(appointment_date, status)',
    'CREATE INDEX IF NOT EXISTS idx_surgery_slots_time_range ON surgery_slots(start_time, end_time)',
]


def ensure_database_schema(bind=None) -> None:
    global _schema_checked

    if _schema_checked:
        return

    with _schema_lock:
        if _schema_checked:
            return

        bind = bind or engine

        # Registers every model on Base.metadata.
        from backend.models import appointment, contact, surgery_slot, user  # noqa: F401

        Base.metadata.create_all(bind=bind)

        inspector = inspect(bind)
        with bind.begin() as connection:
            for table_name, migration_steps in COLUMN_MIGRATIONS.items():
                existing_columns = {column['name'] for column in inspector.get_columns(table_name)}
                for column_name, statement in migration_steps:
                    if column_name not in existing_columns:
                        connection.execute(text(statement))
            for statement in INDEX_STATEMENTS:
                connection.execute(text(statement))

        _schema_checked = True


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
