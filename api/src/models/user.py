"""
User document models.

Provides Pydantic schemas for:
- User requests (create, update)
- User responses
- Conversion from stored MongoDB documents
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator


# ============================================================================
# Pydantic Request Models
# ============================================================================


class CreateUserRequest(BaseModel):
    """Create user request schema."""
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Display name"
    )
    email: EmailStr = Field(
        ...,
        description="Email address (unique)"
    )
    age: Optional[int] = Field(
        None,
        ge=0,
        le=150,
        description="Age in years"
    )

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Reject names that are only whitespace."""
        v = v.strip()
        if not v:
            raise ValueError("Name must not be blank")
        return v

    model_config = {
        "json_schema_extra": {
            "example": {
                "name": "Jane Doe",
                "email": "jane@example.com",
                "age": 31
            }
        }
    }


class UpdateUserRequest(BaseModel):
    """Update user request schema with optional fields."""
    name: Optional[str] = Field(
        None,
        min_length=1,
        max_length=100,
        description="Display name"
    )
    email: Optional[EmailStr] = Field(
        None,
        description="Email address"
    )
    age: Optional[int] = Field(
        None,
        ge=0,
        le=150,
        description="Age in years"
    )

    # Defaults are not validated, so a None reaching these validators was sent explicitly.

    @field_validator("email")
    @classmethod
    def reject_null_email(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            raise ValueError("Email cannot be null")
        return v

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> str:
        if v is None:
            raise ValueError("Name cannot be null")
        v = v.strip()
        if not v:
            raise ValueError("Name must not be blank")
        return v

    def changes(self) -> Dict[str, Any]:
        """Fields explicitly set in the request."""
        return self.model_dump(exclude_unset=True)


# ============================================================================
# Pydantic Response Models
# ============================================================================


class UserResponse(BaseModel):
    """User response schema."""
    id: str
    name: str
    email: str
    age: Optional[int] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "UserResponse":
        """Build a response from a stored MongoDB document."""
        return cls(
            id=str(document["_id"]),
            name=document["name"],
            email=document["email"],
            age=document.get("age"),
            created_at=document["created_at"],
            updated_at=document.get("updated_at"),
        )


class UserListResponse(BaseModel):
    """Paginated user list."""
    items: List[UserResponse]
    total: int
    limit: int
    offset: int


class ErrorResponse(BaseModel):
    """Error response schema."""
    detail: str = Field(..., min_length=1)
