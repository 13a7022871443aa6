from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from sso_service import __version__
from sso_service.base_microservice import BaseMicroservice
from sso_service.config import Settings
from sso_service.registry.eureka import EurekaRegistration
from sso_service.users.router import create_router
from sso_service.users.service import UserService
from sso_service.users.store import SQLAlchemyUserStore, UserStore

# Create shared base microservice instance
base_service = BaseMicroservice()


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[UserStore] = None,
    registration: Optional[EurekaRegistration] = None
) -> FastAPI:
    """
    Wire the application: settings -> store -> UserService -> router.

    Args:
        settings: Runtime settings, read from the environment when omitted
        store: User store; a SQLAlchemy store on settings.database_url when omitted
        registration: Discovery client; built from settings when EUREKA_ENABLED
    """
    settings = settings or Settings.from_env()
    store = store or SQLAlchemyUserStore.from_url(
        settings.database_url, timeout=settings.store_timeout_seconds
    )
    if registration is None and settings.eureka_enabled:
        registration = EurekaRegistration(settings)

    user_service = UserService(store, settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Lifespan context manager for FastAPI.
        Handles startup and shutdown.
        """
        base_service.log_event("service.startup", {"service": settings.service_name, "port": settings.port})
        if settings.uses_insecure_secret:
            base_service.logger.warning(
                "JWT_SECRET is not set: tokens are signed with the built-in insecure default. "
                "This is a deployment misconfiguration and must not be used in production."
            )

        try:
            await store.create_schema()
        except Exception as e:
            base_service.log_error(e, context="Schema creation")
            raise

        try:
            if registration is not None:
                await registration.start()
            yield
        finally:
            if registration is not None:
                await registration.stop()
            await store.close()
            base_service.log_event("service.shutdown", {"service": settings.service_name})

    app = FastAPI(
        title="SSO User Service",
        description="User registration, credential validation and token issuance",
        version=__version__,
        lifespan=lifespan
    )
    app.state.settings = settings
    app.state.user_service = user_service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Malformed request bodies are InvalidInput (400), not 422."""
        errors = [
            {"loc": list(err.get("loc", [])), "msg": err.get("msg")}
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": "Invalid input", "errors": errors},
        )

    app.include_router(create_router(user_service), prefix="/users", tags=["users"])

    @app.get("/", tags=["root"])
    async def root():
        """Root endpoint returning API information."""
        return {
            "name": settings.service_name,
            "version": __version__,
            "services": ["users"],
            "discovery": "eureka" if registration is not None else None,
        }

    @app.get("/health", tags=["health"])
    async def health_check():
        """Overall system health check."""
        return {
            "status": "ok",
            "services": {
                "users": "online",
                "discovery": (
                    "registered" if registration is not None and registration.registered
                    else "disabled" if registration is None
                    else "pending"
                ),
            }
        }

    return app


app = create_app()

# For running directly with uvicorn
if __name__ == "__main__":
    import uvicorn
    uvicorn.run("sso_service.main:app", host=app.state.settings.host, port=app.state.settings.port)
