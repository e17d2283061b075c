from fastapi import APIRouter, Depends

from ..entities import Account
from ..schemas import (
    AccountOut,
    EmailIn,
    LoginIn,
    MessageOut,
    PasswordResetIn,
    RegisterIn,
    RegisterOut,
    TokenOut,
)
from ..services import accounts
from ..services.notifications import EmailService
from ..store import RecordStore
from .deps import get_current_account, get_email_service, get_store

router = APIRouter()


@router.post("/register", response_model=RegisterOut, status_code=201)
def register(
    payload: RegisterIn,
    store: RecordStore = Depends(get_store),
    mailer: EmailService = Depends(get_email_service),
):
    _, unlocked = accounts.register(store, payload.email, payload.username, payload.password, mailer)
    return {
        "message": "Account created. Please check your email to verify your account.",
        "requires_verification": True,
        "unlocked_achievements": [item.to_dict() for item in unlocked],
    }


@router.post("/login", response_model=TokenOut)
def login(payload: LoginIn, store: RecordStore = Depends(get_store)):
    token, account = accounts.authenticate(store, payload.email, payload.password)
    return {"access_token": token, "token_type": "bearer", "user": account}


@router.get("/verify", response_model=MessageOut)
def verify_email(token: str = "", store: RecordStore = Depends(get_store)):
    accounts.verify_email(store, token)
    return {"message": "Email verified successfully"}


@router.post("/resend-verification", response_model=MessageOut)
def resend_verification(
    payload: EmailIn,
    store: RecordStore = Depends(get_store),
    mailer: EmailService = Depends(get_email_service),
):
    accounts.resend_verification(store, payload.email, mailer)
    return {"message": "If that account exists and is unverified, a new link has been sent"}


@router.post("/forgot-password", response_model=MessageOut)
def forgot_password(
    payload: EmailIn,
    store: RecordStore = Depends(get_store),
    mailer: EmailService = Depends(get_email_service),
):
    accounts.request_password_reset(store, payload.email, mailer)
    return {"message": "If that account exists, a reset link has been sent"}


@router.post("/reset-password", response_model=MessageOut)
def reset_password(payload: PasswordResetIn, store: RecordStore = Depends(get_store)):
    accounts.reset_password(store, payload.token, payload.new_password)
    return {"message": "Password reset successfully"}


@router.get("/me", response_model=AccountOut)
def me(current_account: Account = Depends(get_current_account)):
    return current_account
