from fastapi import FastAPI, Request
from contextlib import asynccontextmanager
from app.core.config import settings
from app.core.db.base import init_models
from app.core.logging import setup_logging, get_logger, new_request_id
from app.apis.auth.main import router as auth_router
from app.apis.generation.main import router as generation_router, generation_error_handler
from app.modules.generation import GenerationError

import uvicorn
from fastapi.middleware.cors import CORSMiddleware


logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if not settings.app.is_production:
        await init_models()
    logger.info("%s %s started", settings.app.name, settings.app.version)
    yield


def create_app() -> FastAPI:
    setup_logging()
    app = FastAPI(
        title=settings.app.name, version=settings.app.version, lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        rid = new_request_id(request.headers.get("x-request-id"))
        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response

    app.include_router(auth_router)
    app.include_router(generation_router)
    app.add_exception_handler(GenerationError, generation_error_handler)  # type: ignore[arg-type]

    @app.get("/")
    async def root():
        return {
            "status": "ok",
            "app": settings.app.name,
            "version": settings.app.version,
        }

    return app


app = create_app()


if __name__ == "__main__":
    try:
        uvicorn.run(
            "main:app",
            host="0.0.0.0",
            port=settings.app.port,
            reload=not settings.app.is_production,
        )
    except Exception as e:
        print(f"An error occurred when starting the server: {e}.")
