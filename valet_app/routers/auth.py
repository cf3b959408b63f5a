# valet_app/routers/auth.py
"""Phone + OTP login and profile endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from valet_app.config import settings
from valet_app.database import get_db
from valet_app.schemas.auth import (
    SendOTPRequest, SendOTPOut, VerifyOTPRequest, LoginOut,
    UpdateProfileRequest, ProfileOut,
)
from valet_app.services.auth_service import request_login, complete_login
from valet_app.services.identity_service import update_profile
from valet_app.utils.auth_context import AuthContext, get_auth_context

router = APIRouter()


@router.post("/auth/send-otp", response_model=SendOTPOut, summary="Send a login OTP")
async def send_otp(body: SendOTPRequest, db: Session = Depends(get_db)):
    code = await request_login(db, body.phone, body.role)
    return SendOTPOut(
        message="OTP sent successfully",
        otp=code if settings.EXPOSE_OTP_IN_RESPONSE else None,
    )


@router.post("/auth/verify-otp", response_model=LoginOut, summary="Verify OTP and log in")
def verify_otp(body: VerifyOTPRequest, db: Session = Depends(get_db)):
    """Creates the user on first login. Returns a 30-day bearer token."""
    user, token = complete_login(db, body.phone, body.otp, body.name, body.venue_name)
    return {"token": token, "user": user}


@router.put("/auth/profile", response_model=ProfileOut, summary="Update name / venue")
def put_profile(body: UpdateProfileRequest, actor: AuthContext = Depends(get_auth_context),
                db: Session = Depends(get_db)):
    user = update_profile(db, actor.user_id, body.name, body.venue_name)
    return {"message": "Profile updated successfully", "user": user}
