from typing import Optional

from pydantic import BaseModel, field_validator


class Habit(BaseModel):
    id: int
    name: str
    description: str = ""
    completed: bool = False

    def to_json(self) -> dict:
        """Serialized form sent to clients; an empty description is left out."""
        data = self.model_dump()
        if not data["description"]:
            del data["description"]
        return data


class HabitCreate(BaseModel):
    """POST /habits body. Unknown fields (id, completed, ...) are dropped."""

    name: str
    description: Optional[str] = ""

    @field_validator("description")
    @classmethod
    def _none_as_empty(cls, value):
        return value or ""
