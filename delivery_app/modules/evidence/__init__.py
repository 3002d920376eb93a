# delivery_app/modules/evidence/__init__.py
"""
Módulo de Evidencia - Prueba de entrega

Un pedido solo llega a 'delivered' registrando nombre y documento del
destinatario y una firma que no esté en blanco.
"""
