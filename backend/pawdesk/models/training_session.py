from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import JSON, String
from sqlmodel import Column, Field, Relationship, SQLModel

if TYPE_CHECKING:
    from pawdesk.models.client import Client
    from pawdesk.models.dog import Dog
    from pawdesk.models.package import Package


class SessionStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"


class TrainingSession(SQLModel, table=True):
    __tablename__ = "training_session"

    id: Optional[int] = Field(default=None, primary_key=True)
    dog_id: int = Field(foreign_key="dog.id", index=True)
    # Copied from the dog at booking time; may diverge if the dog changes owner later
    client_id: Optional[int] = Field(default=None, foreign_key="client.id", index=True)
    trainer_id: int = Field(foreign_key="users.id")
    start_time: datetime
    duration_minutes: int
    location: str
    status: SessionStatus = Field(default=SessionStatus.SCHEDULED, sa_column=Column(String, nullable=False))
    objectives: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    title: Optional[str] = Field(default=None)
    notes: Optional[str] = Field(default=None)
    # At most one active reservation per session
    package_id: Optional[int] = Field(default=None, foreign_key="package.id", index=True)
    travel_minutes: int = Field(default=0)
    buffer_minutes: int = Field(default=0)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    dog: "Dog" = Relationship(back_populates="sessions")
    client: Optional["Client"] = Relationship(back_populates="sessions")
    package: Optional["Package"] = Relationship(back_populates="sessions")

    @property
    def effective_client_id(self) -> Optional[int]:
        if self.client_id is not None:
            return self.client_id
        return self.dog.client_id if self.dog else None
