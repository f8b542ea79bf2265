from datetime import datetime, timezone
from typing import Optional

from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ConfigRecord(SQLModel, table=True):
    key: str = Field(primary_key=True)
    # JSON dump of firesafe.models.estimate.Configuration (camelCase keys)
    payload: str
    updated_at: datetime = Field(default_factory=utcnow)


class SavedProjectRecord(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    building_type: str
    package_type: str
    user_input: str
    estimation: str
    total_cost: float
    created_at: datetime = Field(default_factory=utcnow)
