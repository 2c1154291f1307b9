from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class RoomType(str, Enum):
    regular = "regular"
    lab = "lab"
    gym = "gym"


class Room(BaseModel):
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    type: RoomType = RoomType.regular
    capacity: int | None = Field(default=None, ge=1)

    def seats(self, enrollment: int) -> bool:
        return self.capacity is None or self.capacity >= enrollment
