"""FastAPI entrypoint."""

import logging

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from server.config import settings
from server.docx.router import router as docx_router
from server.exceptions import AppError


def create_app() -> FastAPI:
    logging.basicConfig(level=settings.log_level.upper())
    app = FastAPI(title=settings.app_name)

    @app.exception_handler(AppError)
    async def app_error_handler(_, exc: AppError):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.code, "message": exc.message},
            headers=exc.headers,
        )

    @app.get("/health")
    async def health_check():
        return {"status": "ok", "environment": settings.environment}

    app.include_router(docx_router, prefix=settings.api_prefix)
    return app


app = create_app()
