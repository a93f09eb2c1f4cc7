import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from kitchen_rental import __version__
from kitchen_rental.api.deps import get_engine
from kitchen_rental.api.errors import register_exception_handlers
from kitchen_rental.api.routers.bookings import router as bookings_router
from kitchen_rental.api.routers.health import router as health_router
from kitchen_rental.api.routers.payments import router as payments_router
from kitchen_rental.config import get_settings
from kitchen_rental.infrastructure.db.engine import create_schema

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    engine = None
    if not settings.use_in_memory:
        engine = get_engine()
        # Tables are created for dev/demo databases; production uses migrations.
        if not settings.is_production:
            await create_schema(engine)
    logger.info(
        "Kitchen rental API started",
        extra={"environment": settings.environment, "in_memory": settings.use_in_memory},
    )
    yield
    if engine is not None:
        await engine.dispose()


app = FastAPI(
    title="Kitchen Equipment Rental API",
    version=__version__,
    lifespan=lifespan,
)

register_exception_handlers(app)

app.include_router(health_router, tags=["Health"])
app.include_router(bookings_router, prefix="/api/v1", tags=["Bookings"])
app.include_router(payments_router, prefix="/api/v1", tags=["Payments"])
