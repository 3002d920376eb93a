# delivery_app/modules/orders/__init__.py
"""
Módulo de Pedidos - Ciclo de vida del pedido

Este módulo implementa:
- Creación de pedidos por remitentes (número único, estado 'pending')
- Máquina de estados con reglas por rol
- Estado efectivo calculado a partir de las incidencias
- Colas del repartidor y filtros del despachador
- Alertas de horario (recogida y entrega próximas)
- Estadísticas por rol

Arquitectura:
- router.py: Endpoints de pedidos
- service.py: Lógica de negocio
- repository.py: Acceso a datos
- state_machine.py: Transiciones permitidas
- queues.py: Estado efectivo y agrupaciones
- schedule.py: Utilidades de fechas
- schemas.py: Modelos de request/response
"""
