# delivery_app/modules/evidence/signature.py
"""Validación de la firma capturada en el lienzo de entrega"""
from io import BytesIO

from PIL import Image, ImageChops, UnidentifiedImageError

from delivery_app.core.exceptions import ValidationError

# El lienzo de captura se inicializa en blanco
BACKGROUND = (255, 255, 255)


def _flatten(image: Image.Image) -> Image.Image:
    """Componer sobre fondo blanco; los píxeles transparentes cuentan como fondo"""
    if image.mode in ("RGBA", "LA") or (image.mode == "P" and "transparency" in image.info):
        rgba = image.convert("RGBA")
        background = Image.new("RGBA", rgba.size, BACKGROUND + (255,))
        return Image.alpha_composite(background, rgba).convert("RGB")
    return image.convert("RGB")


def is_blank_signature(content: bytes) -> bool:
    """
    True si la imagen no tiene ningún trazo: todos sus píxeles son del color
    de fondo. Lanza ``ValidationError`` si los bytes no son una imagen.
    """
    if not content:
        return True

    try:
        with Image.open(BytesIO(content)) as image:
            image.load()
            flat = _flatten(image)
    except (UnidentifiedImageError, OSError) as e:
        raise ValidationError("La firma no es una imagen válida") from e

    if flat.width == 0 or flat.height == 0:
        return True

    blank = Image.new("RGB", flat.size, BACKGROUND)
    return ImageChops.difference(flat, blank).getbbox() is None


def validate_signature(content: bytes) -> None:
    if is_blank_signature(content):
        raise ValidationError("Por favor dibuja la firma del destinatario", field="signature")
