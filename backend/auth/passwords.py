from werkzeug.security import check_password_hash, generate_password_hash

# Compared against when the username is unknown so that both login failure
# paths spend the same hashing time.
_DUMMY_HASH = generate_password_hash("clinic-admin-placeholder")


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password: str, hashed_password: str | None) -> bool:
    if not hashed_password:
        check_password_hash(_DUMMY_HASH, password)
        return False
    return check_password_hash(hashed_password, password)
