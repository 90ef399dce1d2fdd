"""Provision an administrative user.

Usage:
    python -m backend.create_admin --username admin --email admin@clinic.example
"""
import argparse
import getpass
import sys

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError

from backend.auth.passwords import hash_password
from backend.auth.permissions import ROLE_PERMISSIONS
from backend.database import SessionLocal, ensure_database_schema
from backend.models.user import User


def create_user(db, username: str, email: str, password: str, role: str = "admin") -> User:
    username = username.strip()
    email = email.strip().lower()
    role = role.strip().lower()

    if not username or not email or not password:
        raise ValueError("Username, email and password are required.")
    if role not in ROLE_PERMISSIONS:
        raise ValueError(f"Unknown role {role!r}. Choose one of: {', '.join(sorted(ROLE_PERMISSIONS))}.")

    existing = db.query(User).filter(or_(User.username == username, User.email == email)).first()
    if existing is not None:
        raise ValueError("A user with that username or email already exists.")

    user = User(username=username, email=email, hashed_password=hash_password(password), role=role)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--username", required=True)
    parser.add_argument("--email", required=True)
    parser.add_argument("--role", default="admin")
    parser.add_argument("--password", help="Prompted for when omitted.")
    args = parser.parse_args(argv)

    password = args.password or getpass.getpass("Password: ")

    try:
        ensure_database_schema()
    except SQLAlchemyError as exc:
        print(f"Database unavailable: {exc}", file=sys.stderr)
        return 1

    db = SessionLocal()
    try:
        user = create_user(db, args.username, args.email, password, args.role)
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    except SQLAlchemyError as exc:
        db.rollback()
        print(f"Could not create user: {exc}", file=sys.stderr)
        return 1
    finally:
        db.close()

    print(f"Created {user.role} user {user.username} (id {user.id})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
