"""API router for OTP authentication endpoints."""

import logging
from dataclasses import asdict
from typing import Any

from fastapi import (  # type: ignore[import-untyped]
    APIRouter,
    Depends,
    HTTPException,
    status,
)

from chatbot_otp_auth.dependencies import (
    get_bearer_token,
    get_current_user_dependency,
    token_error_to_http,
)
from chatbot_otp_auth.exceptions import OTPStoreError, TokenError
from chatbot_otp_auth.gateway import (
    AuthenticationGateway,
    AuthFailure,
    OTPDispatch,
    describe_failure,
)
from chatbot_otp_auth.schemas import (
    EmailVerify,
    MessageResponse,
    OTPErrorDetail,
    OTPRequest,
    OTPStatusResponse,
    OTPVerify,
    TokenResponse,
)
from chatbot_otp_auth.types import OTPErrorCode

logger = logging.getLogger(__name__)

FAILURE_STATUS: dict[OTPErrorCode, int] = {
    OTPErrorCode.OTP_NOT_FOUND: status.HTTP_401_UNAUTHORIZED,
    OTPErrorCode.OTP_EXPIRED: status.HTTP_401_UNAUTHORIZED,
    OTPErrorCode.INVALID_OTP: status.HTTP_401_UNAUTHORIZED,
    OTPErrorCode.MAX_ATTEMPTS_EXCEEDED: status.HTTP_429_TOO_MANY_REQUESTS,
    OTPErrorCode.TOO_FREQUENT: status.HTTP_429_TOO_MANY_REQUESTS,
    OTPErrorCode.STORE_ERROR: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def _failure(
    error: OTPErrorCode,
    attempts_remaining: int | None = None,
    retry_after: int | None = None,
) -> HTTPException:
    detail = OTPErrorDetail(
        code=error,
        message=describe_failure(error),
        attempts_remaining=attempts_remaining,
        retry_after=retry_after,
    )
    headers = {"Retry-After": str(retry_after)} if retry_after else None
    return HTTPException(
        status_code=FAILURE_STATUS[error],
        detail=detail.model_dump(exclude_none=True),
        headers=headers,
    )


def _store_unavailable(error: OTPStoreError) -> HTTPException:
    logger.error("OTP store %s unavailable: %s", error.backend, error)
    return _failure(OTPErrorCode.STORE_ERROR)


def _dispatch_response(dispatch: OTPDispatch) -> MessageResponse:
    if not dispatch.success and dispatch.error is not None:
        raise _failure(dispatch.error, retry_after=dispatch.retry_after)

    if not dispatch.delivered:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to send OTP email. Please try again shortly.",
        )

    return MessageResponse(message="OTP code has been sent to your email")


def get_auth_router(gateway: AuthenticationGateway[Any]) -> APIRouter:
    """
    Create an APIRouter with OTP authentication endpoints.

    Args:
        gateway: Authentication gateway wired to stores, tokens and users

    Returns:
        Configured APIRouter instance

    Example:
        ```python
        app = FastAPI(lifespan=lifespan)
        app.include_router(get_auth_router(gateway), prefix="/auth", tags=["auth"])
        ```
    """
    router = APIRouter()
    current_user = get_current_user_dependency(gateway)

    @router.post(
        "/request-otp",
        response_model=MessageResponse,
        status_code=status.HTTP_200_OK,
        summary="Request OTP code",
        description="Generate a code, replacing any active one, and email it",
    )
    async def request_otp(request: OTPRequest) -> MessageResponse:
        try:
            dispatch = await gateway.request_otp(request.email, request.purpose)
        except OTPStoreError as e:
            raise _store_unavailable(e) from e
        return _dispatch_response(dispatch)

    @router.post(
        "/resend-otp",
        response_model=MessageResponse,
        status_code=status.HTTP_200_OK,
        summary="Resend OTP code",
        description="Replace the active code and email it, at most once per throttle window",
    )
    async def resend_otp(request: OTPRequest) -> MessageResponse:
        try:
            dispatch = await gateway.resend_otp(request.email, request.purpose)
        except OTPStoreError as e:
            raise _store_unavailable(e) from e
        return _dispatch_response(dispatch)

    @router.post(
        "/verify-otp",
        response_model=TokenResponse,
        status_code=status.HTTP_200_OK,
        summary="Verify OTP code",
        description="Verify a code and receive a session token",
    )
    async def verify_otp(request: OTPVerify) -> TokenResponse:
        try:
            outcome = await gateway.login_with_otp(request.email, request.code)
        except OTPStoreError as e:
            raise _store_unavailable(e) from e

        if isinstance(outcome, AuthFailure):
            raise _failure(outcome.error, attempts_remaining=outcome.attempts_remaining)

        return TokenResponse(
            access_token=outcome.access_token,
            token_type="bearer",
            user_type=outcome.user_type,
        )

    @router.post(
        "/verify-email",
        response_model=MessageResponse,
        status_code=status.HTTP_200_OK,
        summary="Verify email address",
        description="Verify a code sent to the authenticated user's address",
    )
    async def verify_email(
        request: EmailVerify,
        user: Any = Depends(current_user),  # noqa: ANN401
    ) -> MessageResponse:
        try:
            failure = await gateway.verify_email(user, request.code)
        except OTPStoreError as e:
            raise _store_unavailable(e) from e

        if failure is not None:
            raise _failure(failure.error, attempts_remaining=failure.attempts_remaining)
        return MessageResponse(message="Email verified successfully")

    @router.get(
        "/otp-status",
        response_model=OTPStatusResponse,
        status_code=status.HTTP_200_OK,
        summary="OTP status",
        description="Read-only view of the authenticated user's active code",
    )
    async def otp_status(user: Any = Depends(current_user)) -> OTPStatusResponse:  # noqa: ANN401
        try:
            snapshot = await gateway.otp_status(user.email)
        except OTPStoreError as e:
            raise _store_unavailable(e) from e
        return OTPStatusResponse(**asdict(snapshot))

    @router.post(
        "/refresh",
        response_model=TokenResponse,
        status_code=status.HTTP_200_OK,
        summary="Refresh session token",
        description="Revoke the presented token and issue a new one",
    )
    async def refresh(token: str = Depends(get_bearer_token)) -> TokenResponse:
        try:
            session = await gateway.refresh(token)
        except TokenError as e:
            raise token_error_to_http(e) from e
        return TokenResponse(access_token=session.access_token, token_type="bearer")

    @router.post(
        "/logout",
        response_model=MessageResponse,
        status_code=status.HTTP_200_OK,
        summary="Logout user",
        description="Revoke the presented session token",
    )
    async def logout(
        token: str = Depends(get_bearer_token),
        _user: Any = Depends(current_user),  # noqa: ANN401
    ) -> MessageResponse:
        await gateway.logout(token)
        return MessageResponse(message="Successfully logged out")

    return router
