from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from pawdesk.models.client import Client
    from pawdesk.models.training_session import TrainingSession


class Dog(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    # Editable; sessions keep their own denormalized client_id
    client_id: int = Field(foreign_key="client.id", index=True)
    name: str
    breed: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    client: "Client" = Relationship(back_populates="dogs")
    sessions: List["TrainingSession"] = Relationship(back_populates="dog")
