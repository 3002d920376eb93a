# delivery_app/modules/assignments/__init__.py
"""
Módulo de Asignación - Coordinador de repartidores

- Asignación inicial de un pedido pendiente
- Transferencia entre repartidores sin cambiar el estado
- Lista de repartidores elegibles (activos, con rol de repartidor)
"""
