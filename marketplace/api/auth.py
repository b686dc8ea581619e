from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from marketplace.api.deps import get_current_user, get_db
from marketplace.models.user import User
from marketplace.schemas.auth import (
    LoginRequest,
    PasswordChangeRequest,
    RegisterRequest,
    TokenResponse,
    UserRead,
)
from marketplace.schemas.common import Envelope, MessageResponse
from marketplace.services.auth import auth as auth_service
from marketplace.services.auth import create_access_token
from marketplace.services.common import get_or_404
from marketplace.services.response import success_response

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, db: Session = Depends(get_db)):
    user = auth_service.register(db, payload)
    return {"access_token": create_access_token(user), "user": user}


@router.post("/login", response_model=TokenResponse)
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    user, token = auth_service.login(db, payload)
    return {"access_token": token, "user": user}


@router.get("/me", response_model=Envelope[UserRead])
def me(auth=Depends(get_current_user), db: Session = Depends(get_db)):
    return success_response(get_or_404(db, User, auth["user_id"], detail="User not found"))


@router.put("/password", response_model=MessageResponse)
def change_password(
    payload: PasswordChangeRequest,
    auth=Depends(get_current_user),
    db: Session = Depends(get_db),
):
    user = get_or_404(db, User, auth["user_id"], detail="User not found")
    auth_service.change_password(db, user, payload.current_password, payload.new_password)
    return {"message": "Password updated"}
