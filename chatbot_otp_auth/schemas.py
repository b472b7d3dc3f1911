"""Pydantic schemas for request/response models."""

from pydantic import BaseModel, EmailStr, Field  # type: ignore[import-untyped]

from chatbot_otp_auth.types import OTPErrorCode, OTPPurpose


class OTPRequest(BaseModel):
    """Request schema for OTP generation and resend."""

    email: EmailStr = Field(..., description="Email address to send OTP code to")
    purpose: OTPPurpose = Field(
        default=OTPPurpose.LOGIN, description="Flow the code is requested for"
    )


class OTPVerify(BaseModel):
    """Request schema for OTP login."""

    email: EmailStr = Field(..., description="Email address the code was sent to")
    code: str = Field(
        ..., min_length=4, max_length=10, pattern=r"^\d+$", description="OTP code to verify"
    )


class EmailVerify(BaseModel):
    """Request schema for verifying the current user's address."""

    code: str = Field(
        ..., min_length=4, max_length=10, pattern=r"^\d+$", description="OTP code to verify"
    )


class TokenResponse(BaseModel):
    """Response schema for token generation."""

    access_token: str = Field(..., description="Signed session token")
    token_type: str = Field(default="bearer", description="Token type")
    user_type: str = Field(
        default="existing", description="existing, new or guest"
    )


class MessageResponse(BaseModel):
    """Generic message response schema."""

    message: str = Field(..., description="Response message")


class OTPStatusResponse(BaseModel):
    """Read-only view of the caller's active OTP."""

    exists: bool
    purpose: OTPPurpose | None = None
    expires_in_seconds: int = 0
    attempts: int = 0
    max_attempts: int = 0
    attempts_remaining: int = 0


class OTPErrorDetail(BaseModel):
    """Body of the ``detail`` field for typed OTP failures."""

    code: OTPErrorCode
    message: str
    attempts_remaining: int | None = None
    retry_after: int | None = None
