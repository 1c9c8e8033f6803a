# sync_calendars/main.py

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sync_calendars.config import ALLOWED_ORIGINS
from sync_calendars.logging_config import setup_logging
from sync_calendars.middleware import RequestIDMiddleware
from sync_calendars.routes.events import router as events_router
from sync_calendars.routes.feeds import router as feeds_router
from sync_calendars.routes.health import router as health_router
from sync_calendars.routes.inbox import router as inbox_router
from sync_calendars.routes.integrations import router as integrations_router
from sync_calendars.routes.jobs import router as jobs_router
from sync_calendars.routes.metrics import router as metrics_router
from sync_calendars.routes.placeholders import router as placeholders_router
from sync_calendars.routes.reservations import router as reservations_router

# Initialize structured logging
setup_logging()
logger = structlog.get_logger(__name__)

app = FastAPI(
    title="Calendar Sync API",
    description="Reconciles manual, guest-form and channel-feed reservations into one room calendar",
    version="1.0.0",
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS if "*" not in ALLOWED_ORIGINS else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestIDMiddleware)

# Register routers
app.include_router(health_router, tags=["Health"])
app.include_router(metrics_router, tags=["Metrics"])
app.include_router(reservations_router, tags=["Reservations"])
app.include_router(placeholders_router, tags=["Placeholders"])
app.include_router(inbox_router, tags=["Inbox"])
app.include_router(integrations_router, tags=["Integrations"])
app.include_router(feeds_router, tags=["Feeds"])
app.include_router(jobs_router, tags=["Jobs"])
app.include_router(events_router, tags=["Events"])
