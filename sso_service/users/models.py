"""
User persistence model.

Defines the SQLAlchemy table for SSO users and the plain UserRecord the rest
of the service works with.
"""
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import Column, String, DateTime, JSON

from sso_service.base_microservice import Base


def _new_user_id() -> str:
    return uuid.uuid4().hex


class SSOUserModel(Base):
    """User row. Email uniqueness is enforced by the database."""
    __tablename__ = "sso_users"

    id = Column(String(32), primary_key=True, default=_new_user_id)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    company = Column(String, nullable=False)
    roles = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)


@dataclass
class UserRecord:
    """A stored user, including the password hash for internal use."""
    id: str
    name: str
    email: str
    hashed_password: str = field(repr=False)
    company: str
    roles: List[str] = field(default_factory=list)
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, model: SSOUserModel) -> "UserRecord":
        return cls(
            id=model.id,
            name=model.name,
            email=model.email,
            hashed_password=model.hashed_password,
            company=model.company,
            roles=list(model.roles or []),
            created_at=model.created_at,
        )

    def summary(self) -> Dict[str, Any]:
        """External representation. Never includes the password hash."""
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "company": self.company,
            "roles": list(self.roles),
        }
