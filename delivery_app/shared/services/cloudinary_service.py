# delivery_app/shared/services/cloudinary_service.py

import cloudinary
import cloudinary.uploader
import cloudinary.api
import cloudinary.exceptions
from dataclasses import dataclass
from typing import Optional
from datetime import datetime
import uuid
import logging

from delivery_app.config.settings import settings
from delivery_app.core.exceptions import StoreUnavailable, ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AttachmentResult:
    """Resultado explícito de una subida opcional: URL o error, nunca ambos"""
    url: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.url is not None

    @classmethod
    def success(cls, url: str) -> "AttachmentResult":
        return cls(url=url)

    @classmethod
    def failure(cls, error: str) -> "AttachmentResult":
        return cls(error=error)


class CloudinaryService:

    def __init__(self):
        """Inicializar configuración de Cloudinary"""
        if not all([settings.cloudinary_cloud_name, settings.cloudinary_api_key, settings.cloudinary_api_secret]):
            logger.warning("⚠️ Cloudinary no está completamente configurado")
            self.configured = False
            return

        cloudinary.config(
            cloud_name=settings.cloudinary_cloud_name,
            api_key=settings.cloudinary_api_key,
            api_secret=settings.cloudinary_api_secret,
            secure=True
        )
        self.configured = True
        logger.info("✅ Cloudinary configurado correctamente")

    def _upload(self, content: bytes, folder: str, prefix: str, tags: list) -> str:
        if not self.configured:
            raise StoreUnavailable(
                "El almacenamiento de imágenes no está configurado",
                retryable=False
            )

        if len(content) > settings.max_image_size:
            raise ValidationError(
                f"La imagen no debe superar {settings.max_image_size // (1024 * 1024)}MB"
            )

        file_id = str(uuid.uuid4())[:8]
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        public_id = f"{prefix}_{timestamp}_{file_id}"

        logger.info(f"📤 Subiendo imagen: {folder}/{public_id}")
        try:
            result = cloudinary.uploader.upload(
                content,
                public_id=public_id,
                folder=f"{settings.cloudinary_folder}/{folder}",
                tags=tags,
                resource_type="image",
                overwrite=False,
                unique_filename=True,
                use_filename=False
            )
        except cloudinary.exceptions.Error as e:
            logger.error(f"❌ Error subiendo imagen a Cloudinary: {str(e)}")
            raise StoreUnavailable(f"Error subiendo imagen: {str(e)}") from e

        if 'secure_url' not in result:
            raise StoreUnavailable("Cloudinary no retornó URL válida")

        logger.info(f"✅ Imagen subida exitosamente: {result['secure_url']}")
        return result["secure_url"]

    async def upload_signature(self, content: bytes, order_id: int, driver_id: int) -> str:
        """
        Subir la firma del destinatario (PNG)

        Raises:
            StoreUnavailable: si la subida falla; la evidencia no se crea
        """
        return self._upload(
            content,
            folder="delivery_evidence",
            prefix=f"order_{order_id}_signature",
            tags=["delivery_evidence", f"order_{order_id}", f"driver_{driver_id}"]
        )

    async def try_upload_incident_photo(
        self,
        content: Optional[bytes],
        content_type: Optional[str],
        order_id: int
    ) -> Optional[AttachmentResult]:
        """
        Subir la foto de una incidencia sin lanzar excepciones.

        Devuelve ``None`` si no hay foto y un ``AttachmentResult`` con la URL o
        el motivo del fallo en caso contrario.
        """
        if not content:
            return None

        if content_type and content_type not in settings.allowed_image_formats:
            return AttachmentResult.failure(f"Formato no permitido: {content_type}")

        try:
            url = self._upload(
                content,
                folder="incidents",
                prefix=f"order_{order_id}_incident",
                tags=["incident", f"order_{order_id}"]
            )
        except (StoreUnavailable, ValidationError) as e:
            return AttachmentResult.failure(str(e.detail))
        return AttachmentResult.success(url)

    def health_check(self) -> dict:
        """Verificar estado de conexión con Cloudinary"""
        if not self.configured:
            return {
                "status": "error",
                "message": "Cloudinary no está configurado",
                "configured": False
            }

        try:
            result = cloudinary.api.ping()
        except cloudinary.exceptions.Error as e:
            return {
                "status": "error",
                "message": f"Error conectando con Cloudinary: {str(e)}",
                "configured": True
            }

        return {
            "status": "healthy",
            "message": "Cloudinary funcionando correctamente",
            "configured": True,
            "cloud_name": settings.cloudinary_cloud_name,
            "api_response": result
        }

# ==================== INSTANCIA GLOBAL DEL SERVICIO ====================

cloudinary_service = CloudinaryService()


def get_attachment_service() -> CloudinaryService:
    """Dependency de almacenamiento de adjuntos"""
    return cloudinary_service
