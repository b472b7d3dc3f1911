"""FastAPI dependencies for OTP authentication."""

from collections.abc import Callable
from typing import Any

from fastapi import Depends, HTTPException, status  # type: ignore[import-untyped]
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer  # type: ignore[import-untyped]

from chatbot_otp_auth.exceptions import TokenError
from chatbot_otp_auth.gateway import AuthenticationGateway

# HTTP Bearer scheme for token extraction
http_bearer_scheme = HTTPBearer()


def token_error_to_http(error: TokenError) -> HTTPException:
    """Map a rejected token to a 401 response."""
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"code": error.reason.value, "message": str(error)},
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_bearer_token(
    credentials: HTTPAuthorizationCredentials = Depends(http_bearer_scheme),
) -> str:
    """Extract the raw bearer token from the Authorization header."""
    return credentials.credentials


def get_current_user_dependency(
    gateway: AuthenticationGateway[Any],
) -> Callable[..., Any]:
    """
    Create a dependency for getting the current authenticated user.

    Revoked, expired and malformed tokens are all rejected with 401.

    Example:
        ```python
        current_user = Depends(get_current_user_dependency(gateway))

        @app.get("/dashboard")
        async def dashboard(user = current_user):
            return {"user_id": user.id}
        ```
    """

    async def get_current_user(token: str = Depends(get_bearer_token)) -> Any:  # noqa: ANN401
        try:
            return await gateway.authenticate(token)
        except TokenError as e:
            raise token_error_to_http(e) from e

    return get_current_user


def get_verified_user_dependency(
    gateway: AuthenticationGateway[Any],
) -> Callable[..., Any]:
    """
    Create a dependency for a user whose email address has been verified.

    Example:
        ```python
        verified_user = Depends(get_verified_user_dependency(gateway))

        @app.post("/widget/train")
        async def train(user = verified_user):
            ...
        ```
    """
    get_current_user = get_current_user_dependency(gateway)

    async def get_verified_user(user: Any = Depends(get_current_user)) -> Any:  # noqa: ANN401
        if not user.email_verified:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Email address has not been verified",
            )
        return user

    return get_verified_user
