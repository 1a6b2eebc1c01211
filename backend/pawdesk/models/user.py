from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import String
from sqlmodel import Column, Field, SQLModel


class UserRole(str, Enum):
    OWNER = "OWNER"
    TRAINER = "TRAINER"
    ASSISTANT = "ASSISTANT"


# Roles that may be assigned to a session as its trainer
TRAINER_ROLES = (UserRole.TRAINER.value, UserRole.OWNER.value)


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    email: str = Field(unique=True, index=True)
    role: UserRole = Field(default=UserRole.TRAINER, sa_column=Column(String, nullable=False))
    created_at: datetime = Field(default_factory=datetime.utcnow)
