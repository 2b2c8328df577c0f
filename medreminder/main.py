import logging

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from prometheus_fastapi_instrumentator import Instrumentator

from medreminder.api.medications import router as medications_router
from medreminder.api.reports import router as reports_router
from medreminder.core import errors
from medreminder.core.config import settings
from medreminder.core.logging import configure_logging
from medreminder.reminders.config import settings as reminder_settings

logger = logging.getLogger(__name__)

_ERROR_STATUS = {
    errors.NotFoundError: 404,
    errors.UnauthorizedError: 403,
    errors.ValidationError: 422,
    errors.StorageError: 502,
}


async def _domain_error_handler(request: Request, exc: errors.MedReminderError) -> JSONResponse:
    status_code = next((code for cls, code in _ERROR_STATUS.items() if isinstance(exc, cls)), 400)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc!r}")
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title=settings.PROJECT_NAME)
    app.add_exception_handler(errors.MedReminderError, _domain_error_handler)
    app.include_router(medications_router, prefix=f"{settings.API_V1_STR}/medications", tags=["medications"])
    app.include_router(reports_router, prefix=f"{settings.API_V1_STR}/reports", tags=["reports"])

    if not settings.USE_S3_UPLOADS:
        # Serves exports written by LocalBlobStore at REPORTS_BASE_URL
        app.mount("/files/reports", StaticFiles(directory=settings.REPORTS_LOCAL_DIR, check_dir=False), name="reports")

    @app.get("/health")
    def health_check():
        return {"status": "healthy", "service": "medreminder"}

    if reminder_settings.METRICS_ENABLED:
        Instrumentator().instrument(app).expose(app, endpoint="/metrics")
    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "medreminder.main:app",
        host=settings.SERVER_HOST,
        port=settings.SERVER_PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )
