import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from courtqueue import settings
from courtqueue.database import init_db
from courtqueue.errors import EngineError
from courtqueue.routes import bookings, courts, queue

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Courtqueue API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(EngineError)
def engine_error_handler(request: Request, exc: EngineError):
    """Typed engine errors become JSON with a stable code and a retry hint"""
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Include routers
app.include_router(courts.router, prefix="/api", tags=["courts"])
app.include_router(bookings.router, prefix="/api", tags=["bookings"])
app.include_router(queue.router, prefix="/api", tags=["queue"])


@app.on_event("startup")
def on_startup():
    init_db()
    logger.info("Courtqueue API started (database: %s)", settings.DATABASE_URL.split("@")[-1])


@app.get("/api/health")
def health_check():
    return {"app_name": "Courtqueue API", "status": "healthy"}


@app.get("/api/config")
def public_config():
    """Booking limits and prices the clients need to render booking screens"""
    return settings.public_config()
