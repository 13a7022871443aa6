"""
Request and response models for the user endpoints.
"""
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field, field_validator


def unique_roles(roles: Optional[List[str]]) -> Optional[List[str]]:
    """Drop repeated roles, keeping the first occurrence of each."""
    if roles is None:
        return None
    return list(dict.fromkeys(roles))


class UserCreate(BaseModel):
    """Model for user registration."""
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=1)
    company: str = Field(..., min_length=1)
    roles: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("roles", "role"),
    )

    @field_validator("name", "company")
    @classmethod
    def must_not_be_blank(cls, v):
        if not v.strip():
            raise ValueError("must not be blank")
        return v

    @field_validator("roles")
    @classmethod
    def drop_repeated_roles(cls, v):
        return unique_roles(v)


class UserLogin(BaseModel):
    """Model for user login."""
    email: str
    password: str


class UserUpdate(BaseModel):
    """Partial update. Only the listed fields are mutable; all are optional."""
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(None, min_length=1)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=1)
    company: Optional[str] = Field(None, min_length=1)
    roles: Optional[List[str]] = Field(
        None,
        validation_alias=AliasChoices("roles", "role"),
    )

    @field_validator("roles")
    @classmethod
    def drop_repeated_roles(cls, v):
        return unique_roles(v)


class UserOut(BaseModel):
    """Model for user information returned to clients."""
    id: str
    name: str
    email: str
    company: str
    roles: List[str] = []


class UserPage(BaseModel):
    """One page of users."""
    data: List[UserOut]
    total: int
    page: int
    limit: int
