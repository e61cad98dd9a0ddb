import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

import config
from database import get_db, init_db
from handlers.habits import router as habits_router
from services.errors import HabitError, ValidationError
from services.store import HabitStore, MemoryHabitStore, PostgresHabitStore
from utils.cors import CORSPolicyMiddleware

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# ---------- STORE ----------

async def build_store() -> HabitStore:
    if config.HABIT_STORE == "memory":
        logger.info("Using in-memory habit store")
        return MemoryHabitStore()

    if config.HABIT_STORE != "postgres":
        raise RuntimeError(f"HABIT_STORE must be 'postgres' or 'memory', got {config.HABIT_STORE!r}")

    # a failed connection here is fatal for startup
    pool = await get_db(config.DATABASE_URL)
    if config.INIT_DB:
        await init_db(pool)
    logger.info("Using PostgreSQL habit store")
    return PostgresHabitStore(pool)


@asynccontextmanager
async def lifespan(app: FastAPI):
    owns_store = app.state.store is None
    if owns_store:
        app.state.store = await build_store()
    try:
        yield
    finally:
        if owns_store:
            await app.state.store.close()
            app.state.store = None


# ---------- ERRORS ----------

async def habit_error_handler(request: Request, exc: HabitError):
    return JSONResponse({"detail": exc.message}, status_code=exc.status_code)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    messages = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ()))
        messages.append(f"{loc}: {err.get('msg')}")
    error = ValidationError("invalid request: " + "; ".join(messages))
    return await habit_error_handler(request, error)


async def catch_unhandled_errors(request: Request, call_next):
    try:
        return await call_next(request)
    except Exception:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse({"detail": "internal server error"}, status_code=500)


# ---------- APP ----------

def create_app(store: Optional[HabitStore] = None, allowed_origins: Optional[str] = None) -> FastAPI:
    app = FastAPI(title="Habit Tracker API", lifespan=lifespan)
    app.state.store = store

    # added first so it runs inside the CORS middleware
    app.add_middleware(BaseHTTPMiddleware, dispatch=catch_unhandled_errors)
    app.add_middleware(
        CORSPolicyMiddleware,
        allowed_origins=allowed_origins if allowed_origins is not None else config.ALLOWED_ORIGINS,
    )
    app.add_exception_handler(HabitError, habit_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.include_router(habits_router)
    return app


app = create_app()


def main():
    logger.info("Server running on http://%s:%s", config.HOST, config.PORT)
    uvicorn.run(app, host=config.HOST, port=config.PORT, log_level=config.LOG_LEVEL.lower())


if __name__ == "__main__":
    main()
