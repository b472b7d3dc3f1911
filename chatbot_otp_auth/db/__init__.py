"""OTP stores and user adapters for chatbot-otp-auth."""

from chatbot_otp_auth.db.memory import MemoryOTPStore
from chatbot_otp_auth.db.models import OTPRecord
from chatbot_otp_auth.db.protocols import OTPStore, UserDatabase
from chatbot_otp_auth.db.selector import OTPStoreSelector
from chatbot_otp_auth.db.sqlalchemy.adapter import SQLAlchemyUserDatabase
from chatbot_otp_auth.db.sqlalchemy.models import BaseOTPCodeTable, BaseWidgetUserTable
from chatbot_otp_auth.db.sqlalchemy.otp_store import SQLAlchemyOTPStore
from chatbot_otp_auth.db.sqlalchemy.types import UTCDateTime

__all__ = [
    "BaseOTPCodeTable",
    "BaseWidgetUserTable",
    "MemoryOTPStore",
    "OTPRecord",
    "OTPStore",
    "OTPStoreSelector",
    "SQLAlchemyOTPStore",
    "SQLAlchemyUserDatabase",
    "UTCDateTime",
    "UserDatabase",
]

# Conditionally export MongoDB classes if motor is installed
try:
    from chatbot_otp_auth.db.mongodb.adapter import MongoUserDatabase
    from chatbot_otp_auth.db.mongodb.models import BaseWidgetUserDocument
    from chatbot_otp_auth.db.mongodb.otp_store import MongoOTPStore

    __all__ += ["BaseWidgetUserDocument", "MongoOTPStore", "MongoUserDatabase"]
except ImportError:
    # MongoDB support not installed
    pass
