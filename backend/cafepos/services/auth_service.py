# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication and Identity Store

WHY: Every order must be attributable. Uses bcrypt for password hashing and
validates password strength at account creation.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters, with upper/lower case, digit and special char
- Session tokens managed separately (see session_service.py)
"""

import logging
import re

import bcrypt

from ..errors import ConflictError, ValidationError
from ..extensions import db
from ..models import User, ROLES
from cafepos.time_utils import utcnow

logger = logging.getLogger(__name__)


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""

    def __init__(self, message: str):
        super().__init__(message, [{"field": "password", "message": message}])


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Raises PasswordValidationError if requirements not met.
    """
    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str, rounds: int = 12) -> str:
    """
    Hash password using bcrypt.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    WHY timing-safe: bcrypt.checkpw() prevents timing attacks automatically.
    A malformed stored hash counts as a mismatch.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def find_by_id(user_id: int) -> User | None:
    return db.session.get(User, user_id)


def find_by_username(username: str) -> User | None:
    return db.session.query(User).filter_by(username=username).first()


def search_user_ids(term: str) -> list[int]:
    """Ids of users whose username contains term, case-insensitively."""
    rows = db.session.query(User.id).filter(User.username.icontains(term, autoescape=True)).all()
    return [row.id for row in rows]


def list_users() -> list[User]:
    return db.session.query(User).order_by(User.username.asc()).all()


def create_user(username: str, password: str, role: str = "cashier", bcrypt_rounds: int = 12) -> User:
    """
    Create new user with bcrypt password hashing.

    Raises:
        ValidationError: blank username or unknown role
        PasswordValidationError: weak password
        ConflictError: username already taken
    """
    username = (username or "").strip()
    if not username:
        raise ValidationError("username is required", [{"field": "username", "message": "username is required"}])
    if role not in ROLES:
        message = f"role must be one of: {', '.join(ROLES)}"
        raise ValidationError(message, [{"field": "role", "message": message}])
    validate_password_strength(password or "")

    if find_by_username(username):
        raise ConflictError("Username already exists")

    user = User(
        username=username,
        password_hash=hash_password(password or "", rounds=bcrypt_rounds),
        role=role,
    )

    db.session.add(user)
    db.session.commit()
    logger.info("user_created user_id=%s username=%s role=%s", user.id, user.username, user.role)
    return user


def authenticate(username: str, password: str) -> User | None:
    """
    Authenticate user with username and password.

    Returns User if credentials valid, None otherwise.
    Updates last_login_at timestamp on successful authentication.
    """
    user = db.session.query(User).filter(
        User.username == username,
        User.is_active.is_(True),
    ).first()

    if not user:
        return None

    if verify_password(password, user.password_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        return user

    return None
