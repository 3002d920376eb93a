# delivery_app/modules/notifications/__init__.py
"""
Módulo de Avisos - Detección de pedidos nuevos por polling

Arquitectura:
- detector.py: Diferencia entre ciclos, antirrebote y supresión
- poller.py: Ciclo asíncrono con descarte de resultados obsoletos
- client.py: Cliente HTTP del servicio de entregas
- sink.py: Destinos de los avisos
"""
