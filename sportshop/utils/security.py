from datetime import datetime, timedelta, timezone
from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
import uuid

from jose import jwt, JWTError
from passlib.context import CryptContext

from sportshop.config import get_settings
from sportshop.models.user import User, TokenBlacklist, get_db
from sportshop.utils.errors import AuthError, ForbiddenError

settings = get_settings()
ADMIN_EMAIL = settings.ADMIN_EMAIL
SECRET_KEY = settings.SECRET_KEY
ALGORITHM = settings.ALGORITHM
ACCESS_TOKEN_EXPIRE_MINUTES = settings.ACCESS_TOKEN_EXPIRE_MINUTES

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
http_bearer = HTTPBearer(auto_error=False)


# ===== Password helpers =====
def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, stored: str) -> bool:
    try:
        return pwd_context.verify(password, stored)
    except (TypeError, ValueError):
        # empty or unrecognised hash
        return False


# ===== JWT helpers =====
def create_access_token(subject: str, expires_delta: Optional[timedelta] = None) -> str:
    issued = datetime.now(timezone.utc)
    lifetime = expires_delta if expires_delta is not None else timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {
        "sub": subject,
        "iat": issued,
        "nbf": issued,
        "exp": issued + lifetime,
        "jti": uuid.uuid4().hex,  # lets a single token be revoked on logout
    }
    return jwt.encode(claims, SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise AuthError("Invalid or expired token")


def is_token_blacklisted(db: Session, jti: str) -> bool:
    return db.query(TokenBlacklist.id).filter(TokenBlacklist.jti == jti).first() is not None


def blacklist_token(db: Session, jti: str) -> None:
    if is_token_blacklisted(db, jti):
        return
    db.add(TokenBlacklist(jti=jti))
    db.commit()


def get_current_user(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer),
    db: Session = Depends(get_db),
) -> User:
    if creds is None or not creds.credentials:
        raise AuthError()
    claims = decode_access_token(creds.credentials)
    if not claims.get("jti") or is_token_blacklisted(db, claims["jti"]):
        raise AuthError("Token revoked")
    subject = claims.get("sub")
    if not subject:
        raise AuthError("Invalid token payload")
    user = db.query(User).filter(User.email == subject).one_or_none()
    if user is None:
        raise AuthError("Invalid user")
    return user


# ===== Admin guard =====
def is_admin(user: User) -> bool:
    """Admins are users with the admin role, plus the configured ADMIN_EMAIL account."""
    if user.role == "admin":
        return True
    return bool(ADMIN_EMAIL) and user.email == ADMIN_EMAIL


def get_current_admin(user: User = Depends(get_current_user)) -> User:
    if not is_admin(user):
        raise ForbiddenError()
    return user
