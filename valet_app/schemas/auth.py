# valet_app/schemas/auth.py
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional
from valet_app.models.user import Role


class SendOTPRequest(BaseModel):
    phone: str = Field(min_length=4, max_length=32)
    role: str                 # customer | valet, validated by the auth flow


class SendOTPOut(BaseModel):
    message: str
    otp: Optional[str] = None  # MVP shortcut, see EXPOSE_OTP_IN_RESPONSE


class VerifyOTPRequest(BaseModel):
    phone: str = Field(min_length=4, max_length=32)
    otp: str = Field(min_length=1, max_length=6)
    name: str = ""
    venue_name: Optional[str] = None   # valets only


class UpdateProfileRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    venue_name: Optional[str] = None


class UserOut(BaseModel):
    id: str
    phone: str
    name: str
    role: Role
    venue_name: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class UserSummary(BaseModel):
    """User sub-record on session reads. Empty when the user record is missing."""
    id: Optional[str] = None
    phone: Optional[str] = None
    name: Optional[str] = None
    role: Optional[Role] = None
    venue_name: Optional[str] = None

    class Config:
        from_attributes = True


class LoginOut(BaseModel):
    token: str
    user: UserOut


class ProfileOut(BaseModel):
    message: str
    user: UserOut
