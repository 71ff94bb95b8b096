import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from distrohub.core.config import settings
from distrohub.core.errors import DistroError
import distrohub.models  # noqa: F401  # force model registration

from distrohub.api.v1.auth import router as auth_router
from distrohub.api.v1.companies import router as companies_router
from distrohub.api.v1.saas_admin import router as saas_admin_router
from distrohub.api.v1.users import router as users_router
from distrohub.api.v1.dealer_groups import router as dealer_groups_router
from distrohub.api.v1.dealers import router as dealers_router
from distrohub.api.v1.orders import router as orders_router

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(DistroError)
    async def handle_distro_error(request: Request, exc: DistroError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        errors = [
            {"field": ".".join(str(p) for p in err.get("loc", ())[1:]), "message": err.get("msg")}
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content={
                "success": False,
                "reason": "VALIDATION_ERROR",
                "message": "Validation failed",
                "errors": errors,
            },
        )

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(
            status_code=500,
            content={"success": False, "reason": "INTERNAL_ERROR", "message": "Internal server error"},
        )


def create_application() -> FastAPI:
    configure_logging()
    app = FastAPI(title="DistroHub API")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    @app.get("/")
    def root():
        return {"status": "ok", "service": "distrohub"}

    # Routers
    app.include_router(auth_router, prefix="/api/v1")
    app.include_router(companies_router, prefix="/api/v1")
    app.include_router(saas_admin_router, prefix="/api/v1")
    app.include_router(users_router, prefix="/api/v1")
    app.include_router(dealer_groups_router, prefix="/api/v1")
    app.include_router(dealers_router, prefix="/api/v1")
    app.include_router(orders_router, prefix="/api/v1")

    return app


app = create_application()
