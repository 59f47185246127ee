import asyncio
import logging
from contextlib import asynccontextmanager, suppress
from fastapi import FastAPI
from mobycomps.api.exceptions import register_error_handler
from mobycomps.api.v1.routes import (auth, users, categories, competitions, tickets, cart, checkout, site_config,
                                     admin_maintenance, health)
from mobycomps.core.config import LOG_LEVEL, LOG_FORMAT, SWEEP_INTERVAL_SECONDS
from mobycomps.core.database import AsyncSessionLocal
from mobycomps.core.middleware.http_ctx import HttpContextMiddleware
from mobycomps.core.middleware.request_id import RequestIdMiddleware
from mobycomps.core.redis import create_redis
from mobycomps.workers.expiry_sweeper import sweep_forever

logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)
logger = logging.getLogger("mobycomps")


@asynccontextmanager
async def lifespan(app: FastAPI):
    r = await create_redis()
    app.state.redis = r

    stop = asyncio.Event()
    sweeper = None
    if SWEEP_INTERVAL_SECONDS > 0:
        sweeper = asyncio.create_task(sweep_forever(AsyncSessionLocal, stop, SWEEP_INTERVAL_SECONDS))
        logger.info("Background expiry sweep every %ss", SWEEP_INTERVAL_SECONDS)
    try:
        yield
    finally:
        stop.set()
        if sweeper:
            with suppress(asyncio.CancelledError):
                await sweeper
        await r.aclose()


app = FastAPI(title="Moby Comps API", lifespan=lifespan)
app.add_middleware(HttpContextMiddleware)
app.add_middleware(RequestIdMiddleware, header_name="X-Request-ID")
register_error_handler(app)

app.include_router(auth.router)
app.include_router(users.router)
app.include_router(categories.router)
app.include_router(competitions.router)
app.include_router(tickets.router)
app.include_router(cart.router)
app.include_router(checkout.router)
app.include_router(site_config.router)
app.include_router(admin_maintenance.router)
app.include_router(health.router)
