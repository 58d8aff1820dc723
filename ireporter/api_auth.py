"""
Auth API Endpoints
==================

- POST  /auth/signup   - Register, returns token + user
- POST  /auth/login    - Login, returns token + user
- GET   /auth/profile  - Current user
- PATCH /auth/profile  - Update current user
- GET   /auth/users    - All users (admin)
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from .auth import AuthContext, get_auth_context, get_auth_service, serialize_user, token_for_user
from .db.session import get_db
from .schemas import LoginRequest, ProfileUpdate, SignupRequest, success

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/signup")
def signup(body: SignupRequest, db: Session = Depends(get_db)):
    user = get_auth_service(db).signup(
        body.first_name, body.last_name, body.email, body.password, body.phone
    )
    payload = {"token": token_for_user(user), "user": serialize_user(user)}
    return JSONResponse(status_code=201, content=success(201, payload))


@router.post("/login")
def login(body: LoginRequest, db: Session = Depends(get_db)):
    user = get_auth_service(db).authenticate(body.email, body.password)
    payload = {"token": token_for_user(user), "user": serialize_user(user)}
    return success(200, payload)


@router.get("/profile")
def get_profile(auth: AuthContext = Depends(get_auth_context), db: Session = Depends(get_db)):
    user = get_auth_service(db).get_profile(auth.user_id)
    return success(200, serialize_user(user))


@router.patch("/profile")
def update_profile(
    body: ProfileUpdate,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    user = get_auth_service(db).update_profile(
        auth.user_id,
        first_name=body.first_name,
        last_name=body.last_name,
        email=body.email,
        phone=body.phone,
        phone_provided="phone" in body.model_fields_set,
    )
    return success(200, serialize_user(user))


@router.get("/users")
def list_users(auth: AuthContext = Depends(get_auth_context), db: Session = Depends(get_db)):
    users = get_auth_service(db).list_users(auth)
    return success(200, [serialize_user(u) for u in users])
