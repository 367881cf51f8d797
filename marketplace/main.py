"""Marketplace API – FastAPI application."""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from marketplace.config import Settings, get_settings
from marketplace.database import Database
from marketplace.errors import register_exception_handlers
from marketplace.routers import auth, checkout, products, profile
from marketplace.services.tokens import TokenService

log = logging.getLogger("uvicorn.error")


def create_app(settings: Settings | None = None, database: Database | None = None) -> FastAPI:
    """Build the application with its settings, database and token service on app.state."""
    settings = settings or get_settings()
    database = database or Database(settings.database_url)

    app = FastAPI(title=settings.app_name, debug=settings.debug)
    app.state.settings = settings
    app.state.database = database
    app.state.token_service = TokenService(settings.jwt_secret_key, settings.jwt_algorithm, settings.jwt_issuer)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    app.include_router(auth.router)
    app.include_router(profile.router)
    app.include_router(products.router)
    app.include_router(checkout.router)

    @app.on_event("startup")
    def startup():
        if not (settings.twilio_account_sid and settings.twilio_auth_token and settings.twilio_from_phone_number):
            log.warning("Twilio not configured - OTP codes will not be delivered by SMS")
        try:
            database.create_all()
        except Exception as e:
            log.warning("Database startup failed (tables skipped). Check DATABASE_URL and network. Error: %s", e)

    @app.on_event("shutdown")
    def shutdown():
        database.dispose()

    @app.get("/")
    def root():
        return {"app": settings.app_name, "status": "ok"}

    @app.get("/health")
    def health():
        return {"status": "healthy"}

    return app


app = create_app()
