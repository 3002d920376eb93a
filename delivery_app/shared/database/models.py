# delivery_app/shared/database/models.py
from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Date, Text,
    ForeignKey, func
)
from sqlalchemy.orm import relationship
from datetime import datetime

from delivery_app.config.database import Base
from delivery_app.shared.schemas.enums import (
    OrderStatus, IncidentStatus, UserRole, OnlineStatus
)

# =====================================================
# MIXIN PARA TIMESTAMPS
# =====================================================
class TimestampMixin:
    """Mixin que agrega campos created_at y updated_at"""
    created_at = Column(DateTime, nullable=False, default=datetime.now, server_default=func.current_timestamp())
    updated_at = Column(DateTime, nullable=False, default=datetime.now, server_default=func.current_timestamp(), onupdate=datetime.now)


# =====================================================
# USUARIOS
# =====================================================

class User(Base, TimestampMixin):
    """Modelo de Usuario (admin, cliente o repartidor)"""
    __tablename__ = "usuarios"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), nullable=False, unique=True)
    password_hash = Column(String(255), nullable=False)
    nombre = Column(String(255), nullable=False)
    telefono = Column(String(50))
    rol = Column(String(20), default=UserRole.CLIENTE.value, nullable=False, index=True)
    vehiculo = Column(String(100))
    is_active = Column(Boolean, default=True, nullable=False)
    online_status = Column(String(10), default=OnlineStatus.OFFLINE.value, nullable=False)

    @property
    def is_courier(self) -> bool:
        return self.rol == UserRole.REPARTIDOR.value


# =====================================================
# PEDIDOS
# =====================================================

class Order(Base, TimestampMixin):
    """Modelo de Pedido"""
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String(20), unique=True, nullable=False, index=True)
    client_id = Column(Integer, ForeignKey("usuarios.id"), nullable=False, index=True)
    driver_id = Column(Integer, ForeignKey("usuarios.id"), nullable=True, index=True)

    pickup_address = Column(Text, nullable=False)
    pickup_postal_code = Column(String(20), nullable=False)
    delivery_address = Column(Text, nullable=False)
    delivery_postal_code = Column(String(20), nullable=False)
    recipient_name = Column(String(255), nullable=False)
    recipient_phone = Column(String(50), nullable=False)

    pickup_date = Column(Date, nullable=False)
    pickup_time = Column(String(5), nullable=False)
    delivery_date = Column(Date, nullable=False)
    delivery_time = Column(String(5), nullable=False)

    notes = Column(Text)
    status = Column(String(30), default=OrderStatus.PENDING.value, nullable=False, index=True)

    # Relationships
    client = relationship("User", foreign_keys=[client_id])
    driver = relationship("User", foreign_keys=[driver_id])
    evidence = relationship("DeliveryEvidence", back_populates="order", uselist=False, cascade="all, delete-orphan")
    incidents = relationship(
        "Incident",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="Incident.created_at"
    )


class DeliveryEvidence(Base):
    """Prueba de entrega firmada (una por pedido)"""
    __tablename__ = "delivery_evidence"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, unique=True)
    driver_id = Column(Integer, ForeignKey("usuarios.id"), nullable=False, index=True)
    recipient_name = Column(String(255), nullable=False)
    recipient_id_number = Column(String(50), nullable=False)
    signature_url = Column(Text, nullable=False)
    notes = Column(Text)
    created_at = Column(DateTime, nullable=False, default=datetime.now, server_default=func.current_timestamp())

    # Relationships
    order = relationship("Order", back_populates="evidence")
    driver = relationship("User", foreign_keys=[driver_id])


# =====================================================
# INCIDENCIAS
# =====================================================

class Incident(Base, TimestampMixin):
    """Incidencia reportada por un repartidor"""
    __tablename__ = "incidents"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    driver_id = Column(Integer, ForeignKey("usuarios.id"), nullable=False, index=True)
    incident_type = Column(String(50), nullable=False)
    description = Column(Text, nullable=False)
    photo_url = Column(Text)
    status = Column(String(20), default=IncidentStatus.PENDING.value, nullable=False, index=True)
    # Estado del pedido al reportar; 'retry' vuelve aquí
    order_status_at_report = Column(String(30), nullable=False)

    admin_notes = Column(Text)
    resolved_decision = Column(String(30))
    new_driver_id = Column(Integer, ForeignKey("usuarios.id"))
    resolved_by_id = Column(Integer, ForeignKey("usuarios.id"))
    resolved_at = Column(DateTime)

    # Relationships
    order = relationship("Order", back_populates="incidents")
    driver = relationship("User", foreign_keys=[driver_id])
    new_driver = relationship("User", foreign_keys=[new_driver_id])
    resolved_by = relationship("User", foreign_keys=[resolved_by_id])
