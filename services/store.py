import logging
import threading
from abc import ABC, abstractmethod
from typing import List

import asyncpg

from models import Habit
from services.errors import NotFoundError, PersistenceError

logger = logging.getLogger(__name__)

DB_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)

# habits.id is a SERIAL (int4) column
PG_INT_MIN, PG_INT_MAX = -2**31, 2**31 - 1


class HabitStore(ABC):
    """Owns the habit collection. Handlers only ever see copies."""

    @abstractmethod
    async def create(self, name: str, description: str = "") -> Habit:
        ...

    @abstractmethod
    async def list(self) -> List[Habit]:
        ...

    @abstractmethod
    async def complete(self, habit_id: int) -> Habit:
        """Mark a habit completed. Raises NotFoundError for unknown ids."""

    async def close(self) -> None:
        pass


# ======================
# IN-MEMORY
# ======================

class MemoryHabitStore(HabitStore):
    def __init__(self):
        self._habits: List[Habit] = []
        self._next_id = 1
        # guards _habits and _next_id; never held across an await
        self._lock = threading.Lock()

    async def create(self, name: str, description: str = "") -> Habit:
        with self._lock:
            habit = Habit(id=self._next_id, name=name, description=description)
            self._next_id += 1
            self._habits.append(habit)
            return habit.model_copy()

    async def list(self) -> List[Habit]:
        with self._lock:
            return [h.model_copy() for h in self._habits]

    async def complete(self, habit_id: int) -> Habit:
        with self._lock:
            for habit in self._habits:
                if habit.id == habit_id:
                    habit.completed = True
                    return habit.model_copy()
        raise NotFoundError(habit_id)

    def __len__(self):
        with self._lock:
            return len(self._habits)


# ======================
# POSTGRES
# ======================

def _row_to_habit(row) -> Habit:
    return Habit(
        id=row["id"],
        name=row["name"],
        description=row["description"] or "",
        completed=bool(row["completed"]),
    )


class PostgresHabitStore(HabitStore):
    def __init__(self, pool):
        self.pool = pool

    async def create(self, name: str, description: str = "") -> Habit:
        try:
            habit_id = await self.pool.fetchval(
                "INSERT INTO habits(name, description, completed) VALUES($1, $2, $3) RETURNING id",
                name, description, False,
            )
        except DB_ERRORS as e:
            logger.error("Insert failed: %s", e)
            raise PersistenceError(f"error inserting into the database: {e}") from e

        return Habit(id=habit_id, name=name, description=description)

    async def list(self) -> List[Habit]:
        try:
            rows = await self.pool.fetch(
                "SELECT id, name, description, completed FROM habits ORDER BY id"
            )
        except DB_ERRORS as e:
            logger.error("Select failed: %s", e)
            raise PersistenceError(f"error querying the database: {e}") from e

        return [_row_to_habit(r) for r in rows]

    async def complete(self, habit_id: int) -> Habit:
        if not PG_INT_MIN <= habit_id <= PG_INT_MAX:
            raise NotFoundError(habit_id)

        try:
            row = await self.pool.fetchrow("""
                UPDATE habits
                SET completed = TRUE
                WHERE id = $1
                RETURNING id, name, description, completed
            """, habit_id)
        except DB_ERRORS as e:
            logger.error("Update of habit %s failed: %s", habit_id, e)
            raise PersistenceError(f"error updating the database: {e}") from e

        # no row back means nothing matched
        if row is None:
            raise NotFoundError(habit_id)
        return _row_to_habit(row)

    async def close(self) -> None:
        await self.pool.close()
        logger.info("Database pool closed")
