# delivery_app/modules/orders/schedule.py
"""Utilidades de fechas y alertas de horario de pedidos"""
from datetime import date, datetime, time
from typing import Iterable, List, Optional

from delivery_app.config.settings import settings
from delivery_app.shared.schemas.enums import OrderStatus


def _as_date(value) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.fromisoformat(str(value)).date()


def is_today(value, now: Optional[datetime] = None) -> bool:
    day = _as_date(value)
    if day is None:
        return False
    return day == (now or datetime.now()).date()


def filter_orders_by_today(orders: Iterable, now: Optional[datetime] = None) -> List:
    """Pedidos con entrega programada hoy o creados hoy"""
    return [
        order for order in orders
        if is_today(order.delivery_date, now) or is_today(order.created_at, now)
    ]


def _minutes_until(hhmm: Optional[str], now: datetime) -> Optional[float]:
    if not hhmm:
        return None
    hours, minutes = (int(part) for part in hhmm.split(":")[:2])
    target = datetime.combine(now.date(), time(hours, minutes))
    return (target - now).total_seconds() / 60


def is_order_near_delivery(order, now: Optional[datetime] = None) -> bool:
    if order.status in (OrderStatus.DELIVERED.value, OrderStatus.CANCELLED.value):
        return False
    remaining = _minutes_until(order.delivery_time, now or datetime.now())
    return remaining is not None and 0 < remaining <= settings.near_delivery_minutes


def is_order_near_pickup(order, now: Optional[datetime] = None) -> bool:
    if order.status in (
        OrderStatus.IN_TRANSIT.value, OrderStatus.DELIVERED.value, OrderStatus.CANCELLED.value
    ):
        return False
    remaining = _minutes_until(order.pickup_time, now or datetime.now())
    return remaining is not None and 0 < remaining <= settings.near_pickup_minutes


def is_order_at_risk(order, now: Optional[datetime] = None) -> bool:
    return is_order_near_pickup(order, now) or is_order_near_delivery(order, now)
