# delivery_app/api/v1/router.py
from fastapi import APIRouter
from delivery_app.api.v1.auth import router as auth_router
from delivery_app.modules.orders.router import router as orders_router
from delivery_app.modules.assignments.router import router as assignments_router
from delivery_app.modules.evidence.router import router as evidence_router
from delivery_app.modules.incidents.router import router as incidents_router

# Crear router principal de la API v1
api_router = APIRouter()

api_router.include_router(auth_router, prefix="/auth", tags=["authentication"])

api_router.include_router(
    orders_router,
    prefix="/orders",
    tags=["Orders - Pedidos"]
)

api_router.include_router(
    assignments_router,
    prefix="/assignments",
    tags=["Assignments - Asignación de repartidores"]
)

api_router.include_router(
    evidence_router,
    prefix="/evidence",
    tags=["Evidence - Evidencia de entrega"]
)

api_router.include_router(
    incidents_router,
    prefix="/incidents",
    tags=["Incidents - Incidencias"]
)
