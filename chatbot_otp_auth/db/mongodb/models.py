"""MongoDB document models for OTP authentication."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class BaseWidgetUserDocument(BaseModel):
    """
    Base Pydantic model for widget user documents in MongoDB.

    Users should inherit from this class and add their custom fields.

    Required fields:
        - id: MongoDB ObjectId as string (optional for auto-generation)
        - email: Canonical email address (unique, indexed)
        - email_verified: Whether the user proved ownership of the address
        - last_login_at: Timestamp of the last successful OTP login

    Example:
        ```python
        class User(BaseWidgetUserDocument):
            name: str | None = None
            company: str | None = None
        ```
    """

    # MongoDB _id field (ObjectId as string)
    id: str | None = Field(default=None, alias="_id")

    email: EmailStr = Field(..., description="User's email address")
    email_verified: bool = Field(
        default=False, description="Whether user has verified their email"
    )
    last_login_at: datetime | None = Field(
        default=None, description="Last successful OTP login"
    )

    model_config = ConfigDict(
        populate_by_name=True,  # Allow both 'id' and '_id'
        from_attributes=True,
        arbitrary_types_allowed=True,
    )
