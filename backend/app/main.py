import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.routes import router
from app.config import CORS_ORIGINS, DATABASE_URL
from app.errors import EstimatorError, NotFoundError, PersistenceError, TreeValidationError
from app.logging_setup import configure_logging
from app.repository.template_store import TemplateStore

logger = logging.getLogger(__name__)


def create_app(store: Optional[TemplateStore] = None) -> FastAPI:
    """Build the API. A store passed in is used as-is instead of one built from DATABASE_URL."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging()
        app.state.store = store or TemplateStore.from_url(DATABASE_URL)
        app.state.store.init()
        logger.info("Estimator API started")
        yield
        app.state.store.close()
        logger.info("Estimator API stopped")

    app = FastAPI(
        title="Insurance Work Estimator",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Middleware FIRST
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content={"detail": exc.message})

    @app.exception_handler(TreeValidationError)
    async def validation_handler(request: Request, exc: TreeValidationError):
        return JSONResponse(status_code=422, content={"detail": exc.issues})

    @app.exception_handler(PersistenceError)
    async def persistence_handler(request: Request, exc: PersistenceError):
        logger.error("%s", exc.message)
        return JSONResponse(status_code=500, content={"detail": "Failed to save template"})

    @app.exception_handler(EstimatorError)
    async def estimator_error_handler(request: Request, exc: EstimatorError):
        return JSONResponse(status_code=400, content={"detail": exc.message, "context": exc.context})

    # Routes AFTER middleware
    app.include_router(router)
    return app


app = create_app()
