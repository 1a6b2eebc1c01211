from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel


class DogLog(SQLModel, table=True):
    __tablename__ = "dog_log"

    id: Optional[int] = Field(default=None, primary_key=True)
    dog_id: int = Field(foreign_key="dog.id", index=True)
    summary: str
    created_at: datetime = Field(default_factory=datetime.utcnow)
