import logging
import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import fitlife.models as _models  # noqa: F401 (registers tables with SQLModel metadata)
from fitlife.database import create_db_and_tables
from fitlife.routers import analytics, diets, habits, history, profile, sessions, workouts
from fitlife.services.row_store import RowStoreError
from fitlife.settings import get_settings

settings = get_settings()

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger("fitlife")


@asynccontextmanager
async def lifespan(app: FastAPI):
    create_db_and_tables()
    yield


app = FastAPI(title="FitLife", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allow_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def add_request_id_and_log(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    start = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - start) * 1000
    response.headers["X-Request-ID"] = req_id
    log.info("rid=%s %s %s -> %s in %.1fms",
             req_id, request.method, request.url.path, response.status_code, duration_ms)
    return response


@app.exception_handler(RowStoreError)
async def row_store_error_handler(request: Request, exc: RowStoreError):
    log.error("Store error on %s %s: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=502, content={"detail": exc.message})


app.include_router(workouts.router, prefix="/api/workouts", tags=["workouts"])
app.include_router(sessions.router, prefix="/api/workouts", tags=["sessions"])
app.include_router(history.router, prefix="/api/history", tags=["history"])
app.include_router(habits.router, prefix="/api/habits", tags=["habits"])
app.include_router(diets.router, prefix="/api", tags=["diets"])
app.include_router(profile.router, prefix="/api/profile", tags=["profile"])
app.include_router(analytics.router, prefix="/api/analytics", tags=["analytics"])


@app.get("/ping")
def ping():
    return {"pong": True}


@app.get("/version")
def version():
    return {"version": settings.API_VERSION}
