# barbershop/main.py

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from barbershop.config import settings
from barbershop.db import init_db
from barbershop.errors import BookingError
from barbershop.routers import (
    appointments_routes, auth_routes, availability_routes, bans_routes,
    barbers_routes, subscriptions_routes, users_routes, waitlist_routes,
)

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("Database ready, shop timezone %s", settings.timezone)
    yield


app = FastAPI(title="Barbershop scheduling", lifespan=lifespan)


@app.exception_handler(BookingError)
def booking_error_handler(request: Request, exc: BookingError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.reason})


@app.get("/health")
def health_check():
    return {"status": "ok"}


app.include_router(auth_routes.router)
app.include_router(users_routes.router)
app.include_router(barbers_routes.router)
app.include_router(availability_routes.router)
app.include_router(appointments_routes.router)
app.include_router(subscriptions_routes.router)
app.include_router(waitlist_routes.router)
app.include_router(bans_routes.router)
