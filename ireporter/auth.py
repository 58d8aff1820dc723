"""
Authentication & Roles
======================

Bearer-token identity for the reporting API.

Roles:
- citizen: files reports, edits/deletes own drafts
- admin (users.is_admin): sees all reports, changes report status

Authorization Flow:
1. Decode `Authorization: Bearer <jwt>` (subject = user id)
2. Load the user; the admin flag comes from the database, not the token
3. Ownership/status checks happen in the report lifecycle engine
"""

import logging
from typing import Optional, List
from dataclasses import dataclass
from datetime import datetime, timedelta

import jwt
from fastapi import Depends, Header
from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .config import get_settings
from .db.models import User
from .db.session import get_db
from .errors import AuthRequired, Forbidden, NotFound, ValidationError

logger = logging.getLogger(__name__)


# =============================================================================
# PASSWORD HASHING
# =============================================================================

# bcrypt truncates passwords at 72 bytes; enforce to avoid 500s.
MAX_PASSWORD_BYTES = 72

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def is_password_too_long(password: str) -> bool:
    """Return True if password exceeds bcrypt 72-byte limit."""
    return len(password.encode("utf-8")) > MAX_PASSWORD_BYTES


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against a hash"""
    if is_password_too_long(plain_password):
        logger.warning("Auth failed: password exceeds bcrypt 72-byte limit")
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError as e:
        logger.warning(f"Auth failed: invalid password format ({e})")
        return False


def get_password_hash(password: str) -> str:
    """Hash a password"""
    if is_password_too_long(password):
        raise ValidationError("Password exceeds 72 bytes")
    return pwd_context.hash(password)


# =============================================================================
# JWT TOKEN HANDLING
# =============================================================================

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token"""
    settings = get_settings()
    to_encode = data.copy()
    if "sub" in to_encode:
        to_encode["sub"] = str(to_encode["sub"])
    expire = datetime.utcnow() + (expires_delta or timedelta(hours=settings.jwt_expire_hours))
    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Optional[dict]:
    """Decode and validate a JWT token"""
    settings = get_settings()
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except jwt.PyJWTError as e:
        logger.warning(f"Invalid JWT token: {e}")
        return None


def token_for_user(user: User) -> str:
    return create_access_token({"sub": user.id, "email": user.email, "is_admin": bool(user.is_admin)})


# =============================================================================
# AUTH CONTEXT
# =============================================================================

@dataclass
class AuthContext:
    """Resolved identity for a request"""
    user_id: int
    email: str
    is_admin: bool = False

    def owns(self, owner_id: int) -> bool:
        return self.user_id == owner_id


def serialize_user(user: User) -> dict:
    """User without the password hash"""
    return {
        "id": user.id,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "email": user.email,
        "phone": user.phone or None,
        "is_admin": bool(user.is_admin),
        "created_at": user.created_at.isoformat() if user.created_at else None,
        "updated_at": user.updated_at.isoformat() if user.updated_at else None,
    }


# =============================================================================
# AUTH SERVICE
# =============================================================================

class AuthService:
    """Account management using SQLAlchemy"""

    def __init__(self, db: Session):
        self.db = db

    def get_auth_context(self, user_id: int) -> Optional[AuthContext]:
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            logger.warning(f"Auth failed: user {user_id} not found")
            return None
        return AuthContext(user_id=user.id, email=user.email, is_admin=bool(user.is_admin))

    def signup(
        self,
        first_name: Optional[str],
        last_name: Optional[str],
        email: Optional[str],
        password: Optional[str],
        phone: Optional[str] = None,
    ) -> User:
        if not first_name or not last_name or not email or not password:
            raise ValidationError("First name, last name, email, and password are required")

        if self.db.query(User).filter(User.email == email).first():
            raise ValidationError("User already exists with this email")

        user = User(
            first_name=first_name,
            last_name=last_name,
            email=email,
            password=get_password_hash(password),
            phone=phone or None,
        )
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ValidationError("User already exists with this email")
        self.db.refresh(user)
        logger.info(f"User {user.id} signed up")
        return user

    def authenticate(self, email: Optional[str], password: Optional[str]) -> User:
        if not email or not password:
            raise ValidationError("Email and password are required")

        user = self.db.query(User).filter(User.email == email).first()
        if not user:
            logger.warning(f"Auth failed: email {email} not found")
            raise ValidationError("Invalid email or password")

        if not verify_password(password, user.password):
            logger.warning(f"Auth failed: invalid password for user {user.id}")
            raise ValidationError("Invalid email or password")

        return user

    def get_profile(self, user_id: int) -> User:
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFound("User not found")
        return user

    def update_profile(
        self,
        user_id: int,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        phone_provided: bool = False,
    ) -> User:
        if not first_name and not last_name and not email and not phone_provided:
            raise ValidationError("At least one field must be provided for update")

        user = self.get_profile(user_id)

        if email:
            taken = self.db.query(User).filter(User.email == email, User.id != user_id).first()
            if taken:
                raise ValidationError("Email is already in use by another user")
            user.email = email
        if first_name:
            user.first_name = first_name
        if last_name:
            user.last_name = last_name
        if phone_provided:
            user.phone = phone or None

        user.updated_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(user)
        return user

    def list_users(self, auth: AuthContext) -> List[User]:
        if not auth.is_admin:
            raise Forbidden("Admin access required")
        return self.db.query(User).order_by(User.created_at.desc(), User.id.desc()).all()


# =============================================================================
# FASTAPI DEPENDENCY HELPERS
# =============================================================================

def get_auth_service(db: Session) -> AuthService:
    """Get AuthService instance for a database session"""
    return AuthService(db)


def get_auth_context(
    authorization: Optional[str] = Header(None, alias="Authorization"),
    db: Session = Depends(get_db),
) -> AuthContext:
    """Resolve `Authorization: Bearer <jwt>` into an AuthContext"""
    if not authorization or not authorization.lower().startswith("bearer "):
        raise AuthRequired("Access denied. No token provided.")

    token = authorization.split(" ", 1)[1].strip()
    payload = decode_token(token)
    if not payload or not payload.get("sub"):
        raise AuthRequired("Invalid token.")

    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise AuthRequired("Invalid token.")

    auth = get_auth_service(db).get_auth_context(user_id)
    if not auth:
        raise AuthRequired("Invalid token.")
    return auth


def require_admin(auth: AuthContext = Depends(get_auth_context)) -> AuthContext:
    if not auth.is_admin:
        logger.warning(f"Permission denied: user {auth.user_id} is not an admin")
        raise Forbidden("Access denied. Admin privileges required.")
    return auth
