from contextlib import asynccontextmanager
from fastapi import FastAPI
from marketplace.api import cur_version, version_prefix
from marketplace.api.routers import public_routers, seller_routers
from marketplace.common.custom_exceptions import register_all_exceptions
from marketplace.common.logging_setup import setup_logging, shutdown_logging
from marketplace.db.connection import async_engine, async_session
from marketplace.middlewares.auth_middleware import AuthenticationMiddleware
from marketplace.middlewares.request_id_middleware import RequestIdMiddleware
from marketplace.payouts.encryption import get_cipher


@asynccontextmanager
async def app_lifespan(app: FastAPI):
    setup_logging()
    # a missing or malformed key stops startup
    get_cipher()

    try:
        yield
    finally:
        await async_engine.dispose()
        shutdown_logging()


def create_app():
    app = FastAPI(
        title="Marketplace Payouts",
        version=cur_version,
        lifespan=app_lifespan)

    app.include_router(public_routers)
    app.include_router(seller_routers)      # mounts /api/v1/seller

    app.add_middleware(AuthenticationMiddleware, session_maker=async_session,
                       paths=[f"{version_prefix}/health", "/docs", "/redoc"],
                       public_exact=["/openapi.json"])
    app.add_middleware(RequestIdMiddleware)
    register_all_exceptions(app)

    return app

app = create_app()
