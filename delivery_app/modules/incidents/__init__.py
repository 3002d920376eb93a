# delivery_app/modules/incidents/__init__.py
"""
Módulo de Incidencias

- Reporte por el repartidor (foto opcional, sin bloquear si falla)
- Resolución por el despachador: retry, return, reassign, waiting_client
"""
