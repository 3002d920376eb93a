# delivery_app/config/settings.py
from pydantic_settings import BaseSettings
from typing import Optional
import os

class Settings(BaseSettings):
    # App Info
    app_name: str = "Delivery Dispatch API"
    version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"

    # Database
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./delivery.db")

    # Security
    secret_key: str = os.getenv("SECRET_KEY", "change-in-production")
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 10080

    # External Services
    cloudinary_cloud_name: Optional[str] = None
    cloudinary_api_key: Optional[str] = None
    cloudinary_api_secret: Optional[str] = None
    cloudinary_folder: str = "delivery"

    # File Upload
    max_image_size: int = 10 * 1024 * 1024
    allowed_image_formats: set = {"image/jpeg", "image/png", "image/webp", "image/jpg"}

    # Pedidos e incidencias
    order_number_length: int = 6
    order_number_max_attempts: int = 5
    incident_min_description_length: int = 5
    near_pickup_minutes: int = 15
    near_delivery_minutes: int = 12

    # Ciclo de polling y alertas (cliente)
    api_base_url: str = os.getenv("API_BASE_URL", "http://localhost:10000")
    order_poll_interval_seconds: float = 30.0
    alert_cooldown_seconds: float = 10.0
    filter_suppression_seconds: float = 5.0
    api_timeout_seconds: float = 15.0

    # Server
    host: str = "0.0.0.0"
    port: int = int(os.getenv("PORT", 10000))

    # SSL para PostgreSQL en producción
    @property
    def database_url_with_ssl(self) -> str:
        """Agregar SSL para conexiones de producción"""
        if self.database_url and "render" in self.database_url:
            if "?sslmode=" not in self.database_url:
                return f"{self.database_url}?sslmode=require"
        return self.database_url

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = 'ignore'

settings = Settings()
