from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import time
import logging

from delivery_app.core.exceptions import DomainError
from delivery_app.shared.schemas.common import ErrorResponse

logger = logging.getLogger(__name__)

def setup_middleware(app: FastAPI):
    """Configure all middleware for the application"""

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request, call_next):
        start_time = time.time()

        response = await call_next(request)

        process_time = time.time() - start_time
        logger.info(
            f"{request.method} {request.url.path} - "
            f"Status: {response.status_code} - "
            f"Time: {process_time:.4f}s"
        )

        return response

def setup_exception_handlers(app: FastAPI):
    """Errores de dominio como respuesta JSON uniforme"""

    @app.exception_handler(DomainError)
    async def domain_error_handler(request: Request, exc: DomainError):
        level = logging.ERROR if exc.status_code >= 500 else logging.INFO
        logger.log(level, f"⚠️ {request.method} {request.url.path} - {exc.error_code}: {exc.detail}")
        body = ErrorResponse(**exc.to_dict())
        return JSONResponse(status_code=exc.status_code, content=body.model_dump(mode="json"))
