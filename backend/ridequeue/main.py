from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging
import sys

from ridequeue.api import customers, events, health, payments, queue
from ridequeue.core.cache import close_cache, get_cache
from ridequeue.core.config import settings
from ridequeue.core.correlation import CorrelationIdMiddleware
from ridequeue.core.distributed_lock import DistributedLockManager
from ridequeue.core.logging_config import setup_logging
from ridequeue.db.database import AsyncSessionLocal
from ridequeue.services.notification_fanout import NotificationFanout
from ridequeue.services.publishers import CompositePublisher, InMemoryBroadcaster, WebhookRelayPublisher
from ridequeue.services.ride_queue import RideQueueService

logger = logging.getLogger(__name__)

if settings.ENVIRONMENT == "production":
    if "http://localhost:3000" in settings.CORS_ORIGINS and len(settings.CORS_ORIGINS) == 1:
        logger.error("Production environment detected but CORS_ORIGINS only allows localhost.")
        sys.exit(1)

app = FastAPI(title="Ride Queue")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(CorrelationIdMiddleware)


@app.on_event("startup")
async def startup_event():
    setup_logging(settings.LOG_FILE_PATH)

    logger.info(f"Starting up in {settings.ENVIRONMENT} mode")
    logger.info(f"CORS Allowed Origins: {settings.CORS_ORIGINS}")

    app.state.broadcaster = InMemoryBroadcaster()
    publisher = CompositePublisher([app.state.broadcaster])
    if settings.NOTIFICATION_WEBHOOK_URL:
        publisher.add(WebhookRelayPublisher(settings.NOTIFICATION_WEBHOOK_URL))
        logger.info("Relaying notifications to configured webhook")

    app.state.publisher = publisher
    app.state.fanout = NotificationFanout(publisher, minutes_per_ride=settings.MINUTES_PER_RIDE)

    cache = await get_cache()
    lock_manager = DistributedLockManager(cache, acquire_timeout=settings.LOCK_TIMEOUT_SECONDS)

    app.state.ride_queue_service = RideQueueService(
        session_factory=AsyncSessionLocal,
        lock_manager=lock_manager,
        fanout=app.state.fanout,
        minutes_per_ride=settings.MINUTES_PER_RIDE,
        recent_completed_hours=settings.RECENT_COMPLETED_HOURS,
        lock_timeout_seconds=settings.LOCK_TIMEOUT_SECONDS,
    )
    await app.state.ride_queue_service.seed_payment_configurations()


@app.on_event("shutdown")
async def shutdown_event():
    if hasattr(app.state, "fanout"):
        await app.state.fanout.drain()
    if hasattr(app.state, "publisher"):
        await app.state.publisher.close()
    await close_cache()


app.include_router(health.router, prefix="/api/v1/health", tags=["Health Check"])
app.include_router(customers.router, prefix="/api/v1/customers", tags=["Customers"])
app.include_router(payments.router, prefix="/api/v1/payments", tags=["Payments"])
app.include_router(queue.router, prefix="/api/v1/queue", tags=["Queue"])
app.include_router(events.router, prefix="/api/v1/events", tags=["Events"])
