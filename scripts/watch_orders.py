"""
Escuchar avisos de pedidos nuevos desde la consola

Uso:
    python -m scripts.watch_orders admin@delivery.test admin123
"""
import asyncio
import logging
import sys

from delivery_app.config.settings import settings
from delivery_app.modules.notifications.client import DeliveryApiClient
from delivery_app.modules.notifications.poller import poller_for_role
from delivery_app.modules.notifications.sink import LoggingNotificationSink

logging.basicConfig(level=settings.log_level.upper(), format="%(asctime)s %(message)s")

async def watch(email: str, password: str):
    async with DeliveryApiClient() as client:
        user = await client.login(email, password)
        poller = poller_for_role(client, user["rol"], LoggingNotificationSink())
        print(f"👀 Escuchando avisos para {user['nombre']} ({user['rol']}), Ctrl+C para salir")
        try:
            await poller.run()
        finally:
            await poller.drain()

if __name__ == "__main__":
    if len(sys.argv) != 3:
        print(__doc__)
        sys.exit(1)
    try:
        asyncio.run(watch(sys.argv[1], sys.argv[2]))
    except KeyboardInterrupt:
        print("\n🛑 Detenido")
