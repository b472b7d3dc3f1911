"""Chatbot OTP Auth - one-time-code login, session tokens and revocation for the chatbot widget."""

from chatbot_otp_auth.blacklist import TokenBlacklist
from chatbot_otp_auth.config import OTPAuthConfig
from chatbot_otp_auth.db import (
    BaseOTPCodeTable,
    BaseWidgetUserTable,
    MemoryOTPStore,
    OTPRecord,
    OTPStore,
    OTPStoreSelector,
    SQLAlchemyOTPStore,
    SQLAlchemyUserDatabase,
    UserDatabase,
)
from chatbot_otp_auth.dependencies import (
    get_current_user_dependency,
    get_verified_user_dependency,
)
from chatbot_otp_auth.exceptions import OTPStoreError, TokenError
from chatbot_otp_auth.gateway import AuthenticationGateway, AuthFailure, AuthSession
from chatbot_otp_auth.identity import EmailAliasRule, IdentityNormalizer
from chatbot_otp_auth.manager import OTPLifecycleManager, OTPStatus, ResendResult, VerifyResult
from chatbot_otp_auth.router import get_auth_router
from chatbot_otp_auth.schemas import (
    MessageResponse,
    OTPRequest,
    OTPVerify,
    TokenResponse,
)
from chatbot_otp_auth.tokens import TokenIssuer
from chatbot_otp_auth.types import OTPErrorCode, OTPPurpose, TokenErrorCode

__version__ = "0.1.0"

__all__ = [
    "AuthFailure",
    "AuthSession",
    "AuthenticationGateway",
    "BaseOTPCodeTable",
    "BaseWidgetUserTable",
    "EmailAliasRule",
    "IdentityNormalizer",
    "MemoryOTPStore",
    "MessageResponse",
    "OTPAuthConfig",
    "OTPErrorCode",
    "OTPLifecycleManager",
    "OTPPurpose",
    "OTPRecord",
    "OTPRequest",
    "OTPStatus",
    "OTPStore",
    "OTPStoreError",
    "OTPStoreSelector",
    "OTPVerify",
    "ResendResult",
    "SQLAlchemyOTPStore",
    "SQLAlchemyUserDatabase",
    "TokenBlacklist",
    "TokenError",
    "TokenErrorCode",
    "TokenIssuer",
    "TokenResponse",
    "UserDatabase",
    "VerifyResult",
    "get_auth_router",
    "get_current_user_dependency",
    "get_verified_user_dependency",
]

# Conditionally export MongoDB classes if motor is installed
try:
    from chatbot_otp_auth.db import (
        BaseWidgetUserDocument,
        MongoOTPStore,
        MongoUserDatabase,
    )

    __all__ += ["BaseWidgetUserDocument", "MongoOTPStore", "MongoUserDatabase"]
except ImportError:
    # MongoDB support not installed
    pass
