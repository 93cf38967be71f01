from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

USER_ID_PATTERN = r"^[A-Za-z0-9][A-Za-z0-9._@-]*$"


class TokenRequest(BaseModel):
    """Shared API key plus the user the issued tokens will act as."""

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={"example": {"apiKey": "shared-api-key", "userId": "anna"}},
    )

    api_key: str = Field(..., alias="apiKey", min_length=1)
    user_id: str = Field(default="default", alias="userId", max_length=128, pattern=USER_ID_PATTERN)

    @field_validator("api_key", "user_id", mode="before")
    @classmethod
    def strip(cls, value):
        return value.strip() if isinstance(value, str) else value


class TokenResponse(BaseModel):
    user_id: str
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int


class RefreshRequest(BaseModel):
    refresh_token: str = Field(..., alias="refreshToken", min_length=1)

    model_config = ConfigDict(populate_by_name=True)
