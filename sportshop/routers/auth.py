from fastapi import APIRouter, Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session
import logging

from sportshop.config import get_settings
from sportshop.models.user import User, get_db
from sportshop.schemas.user import LoginSchema, RegisterSchema, UserOut
from sportshop.services.notifications import send_email
from sportshop.utils.email_templates import welcome_email
from sportshop.utils.errors import AuthError, ValidationError
from sportshop.utils.security import (
    blacklist_token,
    create_access_token,
    decode_access_token,
    get_current_user,
    hash_password,
    verify_password,
)

logger = logging.getLogger(__name__)

router = APIRouter()
bearer = HTTPBearer(auto_error=False)


@router.post("/register", status_code=201)
def register(payload: RegisterSchema, db: Session = Depends(get_db)):
    email = payload.email.lower()
    if db.query(User).filter(User.email == email).first():
        raise ValidationError("Email already registered")
    user = User(name=payload.name, email=email, password_hash=hash_password(payload.password))
    db.add(user)
    db.commit()
    db.refresh(user)
    if get_settings().ENABLE_EMAIL_NOTIFICATIONS:
        tpl = welcome_email(user.name)
        if not send_email(user.email, tpl["subject"], tpl["body"]):
            logger.warning(f"Welcome email to {user.email} was not sent")
    return {"message": "User registered successfully", "id": user.id}


@router.post("/login")
def login(credentials: LoginSchema, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == credentials.email.lower()).first()
    if not user or not verify_password(credentials.password, user.password_hash):
        raise AuthError("Invalid email or password")
    token = create_access_token(subject=user.email)
    settings = get_settings()
    return {
        "access_token": token,
        "token_type": "bearer",
        "expires_in_minutes": settings.ACCESS_TOKEN_EXPIRE_MINUTES,
        "user": UserOut(id=user.id, name=user.name, email=user.email, role=user.role),
    }


@router.get("/me", response_model=UserOut)
def me(user: User = Depends(get_current_user)):
    return UserOut(id=user.id, name=user.name, email=user.email, role=user.role)


@router.post("/logout")
def logout(creds: HTTPAuthorizationCredentials = Depends(bearer), db: Session = Depends(get_db)):
    if not creds or not creds.credentials:
        raise AuthError()
    payload = decode_access_token(creds.credentials)
    jti = payload.get("jti")
    if jti:
        blacklist_token(db, jti)
    return {"message": "Logged out"}
