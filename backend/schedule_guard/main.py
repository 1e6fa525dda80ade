import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from schedule_guard.database import init_db
from schedule_guard.routes import blockers, conflicts, schedule_events, schedule_import

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

APP_NAME = "Schedule Guard API"

app = FastAPI(title=APP_NAME)

_cors_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
_extra = os.getenv("CORS_ORIGINS", "")
if _extra:
    _cors_origins.extend(o.strip() for o in _extra.split(",") if o.strip())

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(blockers.router, prefix="/api", tags=["blockers"])
app.include_router(conflicts.router, prefix="/api", tags=["conflicts"])
app.include_router(schedule_events.router, prefix="/api", tags=["schedule"])
app.include_router(schedule_import.router, prefix="/api")


@app.on_event("startup")
def on_startup():
    init_db()  # Use centralized init_db() which imports models and creates tables
    logger.info("%s started with %d routes", APP_NAME, len(app.routes))


@app.get("/api/health")
def health_check():
    return {"app_name": APP_NAME, "status": "healthy"}
