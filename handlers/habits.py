import logging
import re

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from models import HabitCreate
from services.errors import ValidationError
from services.store import HabitStore

logger = logging.getLogger(__name__)

router = APIRouter()

INT_ID = re.compile(r"[+-]?[0-9]+")

# ids must fit a signed 64-bit integer
ID_MIN, ID_MAX = -2**63, 2**63 - 1


def get_store(request: Request) -> HabitStore:
    return request.app.state.store


def parse_habit_id(raw: str) -> int:
    if not INT_ID.fullmatch(raw):
        raise ValidationError(f"invalid habit id: {raw!r}")
    # int() raises on very long digit strings
    if len(raw.lstrip("+-").lstrip("0")) > 19 or not ID_MIN <= int(raw) <= ID_MAX:
        raise ValidationError(f"habit id out of range: {raw}")
    return int(raw)


# -------------------------
# POST /habits
# -------------------------
@router.post("/habits", status_code=201)
async def create_habit(payload: HabitCreate, store: HabitStore = Depends(get_store)):
    habit = await store.create(payload.name, payload.description)
    logger.info("Habit %s created: %s", habit.id, habit.name)
    return JSONResponse(habit.to_json(), status_code=201)


# -------------------------
# GET /habits
# -------------------------
@router.get("/habits")
async def list_habits(store: HabitStore = Depends(get_store)):
    habits = await store.list()
    return [h.to_json() for h in habits]


# -------------------------
# PUT /habits/{id}/complete
# -------------------------
@router.put("/habits/{habit_id}/complete")
async def complete_habit(habit_id: str, store: HabitStore = Depends(get_store)):
    habit = await store.complete(parse_habit_id(habit_id))
    logger.debug("Habit %s completed", habit_id)
    return habit.to_json()
