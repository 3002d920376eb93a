import asyncio

import httpx

from delivery_app.core.exceptions import StoreUnavailable
from delivery_app.modules.notifications.client import DeliveryApiClient
from delivery_app.modules.notifications.detector import ChangeDetector
from delivery_app.modules.notifications.poller import OrderFeedPoller, poller_for_role
from delivery_app.modules.notifications.sink import MemoryNotificationSink, NotificationSink
from delivery_app.shared.schemas.enums import NotificationKind


class ScriptedFeed:
    """Devuelve respuestas en orden; una respuesta puede esperar a un evento"""

    def __init__(self, *responses):
        self.responses = list(responses)

    async def __call__(self):
        ids, gate = self.responses.pop(0)
        if gate is not None:
            await gate.wait()
        return ids


class FailingSink(NotificationSink):
    async def notify(self, kind, count):
        raise RuntimeError("pantalla cerrada")


def make_poller(feed, sink=None):
    detector = ChangeDetector(NotificationKind.NEW_ASSIGNMENT, cooldown_seconds=0)
    return OrderFeedPoller(feed, detector, sink or MemoryNotificationSink(), interval_seconds=0)


def test_poll_cycle_notifies_sink():
    async def scenario():
        sink = MemoryNotificationSink()
        poller = make_poller(ScriptedFeed(({1, 2}, None), ({1, 2, 3}, None)), sink)

        assert await poller.poll_once() is None
        event = await poller.poll_once()
        await poller.drain()
        return event, sink.received

    event, received = asyncio.run(scenario())

    assert event.count == 1
    assert received == [(NotificationKind.NEW_ASSIGNMENT, 1)]


def test_stale_poll_result_is_discarded():
    async def scenario():
        gate = asyncio.Event()
        poller = make_poller(ScriptedFeed(({1}, gate), ({1, 2}, None)))

        slow = asyncio.create_task(poller.poll_once())
        await asyncio.sleep(0)
        await poller.refresh_now()
        gate.set()
        stale_result = await slow
        return stale_result, poller.detector.previous

    stale_result, previous = asyncio.run(scenario())

    assert stale_result is None
    assert previous == {1, 2}


def test_failing_sink_does_not_break_polling():
    async def scenario():
        poller = make_poller(ScriptedFeed(({1}, None), ({1, 2}, None), ({1, 2, 3}, None)), FailingSink())
        await poller.poll_once()
        first = await poller.poll_once()
        await poller.drain()
        second = await poller.poll_once()
        await poller.drain()
        return first, second

    first, second = asyncio.run(scenario())

    assert first.count == 1
    assert second.count == 1


def test_run_survives_failed_cycles():
    async def scenario():
        calls = []

        async def feed():
            calls.append(len(calls))
            if len(calls) == 1:
                raise StoreUnavailable("sin conexión")
            return {len(calls)}

        poller = make_poller(feed)
        poller.start()
        while len(calls) < 3:
            await asyncio.sleep(0)
        await poller.stop()
        return calls, poller.running

    calls, running = asyncio.run(scenario())

    assert len(calls) >= 3
    assert running is False


def test_run_survives_malformed_responses():
    """Un cuerpo que no es JSON o sin order_ids solo pierde ese ciclo"""
    responses = [
        httpx.Response(200, json={"order_ids": [1]}),
        httpx.Response(200, text="<html>proxy</html>"),
        httpx.Response(200, json={"count": 2}),
        httpx.Response(200, json={"order_ids": [1, 2]}),
    ]
    fetches = []

    def handler(request):
        fetches.append(request.url.path)
        return responses[min(len(fetches), len(responses)) - 1]

    async def scenario():
        sink = MemoryNotificationSink()
        transport = httpx.MockTransport(handler)
        async with DeliveryApiClient(base_url="http://delivery.test", token="t", transport=transport) as client:
            poller = poller_for_role(client, "repartidor", sink)
            poller.interval_seconds = 0
            poller.detector.cooldown_seconds = 0
            poller.start()
            while len(fetches) < 5:
                await asyncio.sleep(0.01)
            running = poller.running
            await poller.stop()
        return running, sink.received

    running, received = asyncio.run(scenario())

    assert running is True
    assert received == [(NotificationKind.NEW_ASSIGNMENT, 1)]


def test_run_survives_unexpected_errors():
    async def scenario():
        calls = []

        async def feed():
            calls.append(len(calls))
            if len(calls) == 2:
                raise RuntimeError("respuesta inesperada")
            return set(range(len(calls)))

        poller = make_poller(feed)
        poller.start()
        while len(calls) < 4:
            await asyncio.sleep(0)
        running = poller.running
        await poller.stop()
        return running

    assert asyncio.run(scenario()) is True


def test_suppress_alerts_while_filtering():
    async def scenario():
        sink = MemoryNotificationSink()
        poller = make_poller(ScriptedFeed(({1}, None), ({1, 2}, None), ({1, 2, 3}, None)), sink)
        await poller.poll_once()

        poller.suppress_alerts(60)
        silenced = await poller.poll_once()

        poller.suppress_alerts(0)
        event = await poller.poll_once()
        await poller.drain()
        return silenced, event, sink.received

    silenced, event, received = asyncio.run(scenario())

    assert silenced is None
    assert event.count == 1
    assert received == [(NotificationKind.NEW_ASSIGNMENT, 1)]
