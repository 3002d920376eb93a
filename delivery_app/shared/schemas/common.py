# delivery_app/shared/schemas/common.py
from pydantic import BaseModel, Field
from typing import Any, Dict, Optional
from datetime import datetime

class BaseResponse(BaseModel):
    success: bool
    message: str = ""
    timestamp: datetime = Field(default_factory=datetime.now)

class ErrorResponse(BaseResponse):
    success: bool = False
    error_code: Optional[str] = None
    details: Optional[Dict[str, Any]] = None

class UserSummary(BaseModel):
    """Datos mínimos de un usuario embebidos en otras respuestas"""
    id: int
    nombre: str
    email: str
    telefono: Optional[str] = None

    class Config:
        from_attributes = True
