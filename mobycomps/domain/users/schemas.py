from datetime import datetime
from typing import Literal
from pydantic import BaseModel, EmailStr, Field, field_validator, ConfigDict, SecretStr, computed_field
from mobycomps.core.utils.validators import check_password_strength, normalize_phone_or_none


class UserCreateDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    email: EmailStr
    password: SecretStr = Field(
        min_length=8,
        max_length=64,
        description='Password must be between 8 and 64 characters long'
    )
    first_name: str = Field(min_length=2, max_length=256)
    last_name: str = Field(min_length=2, max_length=256)
    phone_number: str | None = Field(default=None)

    @field_validator('password')
    def _check_password(cls, v: SecretStr) -> SecretStr:
        check_password_strength(v)
        return v

    _phone = field_validator('phone_number', mode="before")(normalize_phone_or_none)


class UserReadDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: EmailStr
    first_name: str
    last_name: str
    phone_number: str | None


class RoleReadDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str


class AdminUserListItemDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: EmailStr
    first_name: str
    last_name: str
    created_at: datetime
    is_active: bool
    roles: list[RoleReadDTO] = Field(default_factory=list, exclude=True)

    @computed_field
    @property
    def role_names(self) -> list[str]:
        return sorted(r.name for r in self.roles)


class AdminUsersQueryDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1, le=200)
    email: str | None = Field(default=None, max_length=200)
    is_active: bool | None = None


class UserActiveUpdateDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    is_active: bool


class Token(BaseModel):
    access_token: str
    token_type: Literal["bearer"] = "bearer"
    expires_in: int = Field(description='Expiration time in seconds')


class TokenPayload(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    sub: str
    iat: int
    nbf: int
    exp: int
    jti: str | None = None
    typ: Literal["access"] | None = None
    iss: str | None = None
    aud: str | list[str] | None = None
