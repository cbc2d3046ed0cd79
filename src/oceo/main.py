"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from sqlalchemy.exc import SQLAlchemyError

from oceo.auth.router import router as auth_router
from oceo.blog.router import router as blog_router
from oceo.checkout.purchases_router import router as purchases_router
from oceo.checkout.router import router as checkout_router
from oceo.checkout.webhook import router as stripe_webhook_router
from oceo.community.router import router as community_router
from oceo.config import get_settings
from oceo.courses.router import enrollments_router
from oceo.crm.router import router as crm_router
from oceo.courses.router import router as courses_router
from oceo.database import close_db, get_session_factory, init_db
from oceo.gamification.router import router as gamification_router
from oceo.gamification.seed import seed_default_achievements
from oceo.health.router import router as health_router
from oceo.leads.router import router as leads_router
from oceo.mcp.router import router as mcp_router
from oceo.middleware import setup_middleware
from oceo.products.router import public_router as public_products_router
from oceo.products.router import router as products_router
from oceo.redis_client import close_redis, init_redis
from oceo.resources.router import router as resources_router
from oceo.site.router import router as site_router
from oceo.studio.router import router as studio_router
from oceo.sync.router import keys_router as mmfc_keys_router
from oceo.sync.router import notion_products_router, notion_router
from oceo.sync.router import products_router as mmfc_products_router
from oceo.sync.router import scheduling_router as mmfc_scheduling_router
from oceo.sync.router import services_router as mmfc_services_router
from oceo.users.router import router as users_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)

    # Achievement definitions are seeded idempotently; tables may not exist before migrations
    try:
        async with get_session_factory()() as db:
            created = await seed_default_achievements(db)
            await db.commit()
        logger.info("achievements_seeded", created=created)
    except SQLAlchemyError:
        logger.warning("achievement_seeding_failed", exc_info=True)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Oceoluxe Studio Systems API",
        description="Marketing site, checkout, blog CMS and Studio Systems course platform",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(blog_router)
    app.include_router(mcp_router)
    app.include_router(courses_router)
    app.include_router(enrollments_router)
    app.include_router(studio_router)
    app.include_router(gamification_router)
    app.include_router(community_router)
    app.include_router(products_router)
    app.include_router(public_products_router)
    app.include_router(checkout_router)
    app.include_router(stripe_webhook_router)
    app.include_router(purchases_router)
    app.include_router(leads_router)
    app.include_router(crm_router)
    app.include_router(site_router)
    app.include_router(resources_router)
    app.include_router(mmfc_keys_router)
    app.include_router(mmfc_products_router)
    app.include_router(mmfc_scheduling_router)
    app.include_router(mmfc_services_router)
    app.include_router(notion_router)
    app.include_router(notion_products_router)

    return app


app = create_app()
