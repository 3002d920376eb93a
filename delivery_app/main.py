# delivery_app/main.py
import logging
from fastapi import FastAPI
from contextlib import asynccontextmanager

from delivery_app.config.settings import settings
from delivery_app.config.database import Base, engine
from delivery_app.core.middleware import setup_middleware, setup_exception_handlers
from delivery_app.api.v1.router import api_router
from delivery_app.shared.services.cloudinary_service import cloudinary_service

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("🚀 Delivery Dispatch API Starting...")
    logger.info(f"📍 Version: {settings.version}")
    logger.info(f"🌍 Environment: {'Development' if settings.debug else 'Production'}")
    logger.info(f"🔐 JWT Algorithm: {settings.algorithm}")
    logger.info(f"🗄️  Database: {settings.database_url.split('@')[1] if '@' in settings.database_url else settings.database_url}")

    if settings.is_sqlite:
        Base.metadata.create_all(bind=engine)
        logger.info("🧱 Tablas SQLite creadas")

    yield

    # Shutdown
    logger.info("🛑 Delivery Dispatch API Shutting down...")

# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.version,
    description="Coordinación de pedidos entre despachador, remitentes y repartidores",
    docs_url="/docs",
    redoc_url="/redoc" if settings.debug else None,
    lifespan=lifespan
)

setup_middleware(app)
setup_exception_handlers(app)

app.include_router(api_router, prefix="/api/v1")

@app.get("/")
async def root():
    return {
        "message": "🚚 Delivery Dispatch API",
        "version": settings.version,
        "status": "running",
        "environment": "production" if not settings.debug else "development",
        "docs": "/docs",
        "api": "/api/v1"
    }

@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "version": settings.version,
        "app": settings.app_name,
        "attachments_configured": cloudinary_service.configured,
        "environment": "production" if not settings.debug else "development"
    }

@app.get("/health/attachments")
async def attachments_health_check():
    """Estado de la conexión con Cloudinary"""
    return cloudinary_service.health_check()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "delivery_app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
