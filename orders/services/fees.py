"""
Distance and fee arithmetic for checkout and settlement.

Everything here is pure: no database access, no logging. Amounts are whole
currency units. Defaults for rates and minimums come from Django settings.
"""

import math
from decimal import Decimal

from django.conf import settings

EARTH_RADIUS_KM = 6371


def shipping_rate_per_km() -> int:
    return getattr(settings, "SHIPPING_RATE_PER_KM", 2500)


def shipping_min_fee() -> int:
    return getattr(settings, "SHIPPING_MIN_FEE", 5000)


def buyer_service_fee() -> int:
    return getattr(settings, "BUYER_SERVICE_FEE", 2000)


def driver_pickup_fee() -> int:
    return getattr(settings, "DRIVER_PICKUP_FEE", 1000)


def seller_fee_percent() -> int:
    return getattr(settings, "SELLER_FEE_PERCENT", 10)


def validate_coordinate(lat, lon) -> None:
    """Raise ValueError unless (lat, lon) is a real point on the globe."""
    if lat is None or lon is None:
        raise ValueError("Coordinate is missing a latitude or longitude.")
    if not (-90 <= lat <= 90) or not (-180 <= lon <= 180):
        raise ValueError(f"Malformed coordinate ({lat!r}, {lon!r}).")


def distance_km(origin_lat, origin_lon, dest_lat, dest_lon) -> float:
    """Great-circle (haversine) distance in km, rounded to 2 decimals."""
    validate_coordinate(origin_lat, origin_lon)
    validate_coordinate(dest_lat, dest_lon)

    d_lat = math.radians(dest_lat - origin_lat)
    d_lon = math.radians(dest_lon - origin_lon)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(origin_lat))
        * math.cos(math.radians(dest_lat))
        * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return round(EARTH_RADIUS_KM * c, 2)


def shipping_fee(distance, rate_per_km: int = None, minimum: int = None) -> int:
    """
    Price of one shipment: ``ceil(distance * rate_per_km)``, never below
    ``minimum``. Same-location shipments cost the minimum.

    The product is taken in decimal so a distance like 1.1 km at 2500/km
    costs exactly 2750, not 2751.
    """
    if rate_per_km is None:
        rate_per_km = shipping_rate_per_km()
    if minimum is None:
        minimum = shipping_min_fee()

    if distance < 0:
        raise ValueError(f"Distance can't be negative, got {distance!r}.")
    if rate_per_km < 0 or minimum < 0:
        raise ValueError("Shipping rate and minimum fee can't be negative.")

    fee = math.ceil(Decimal(str(distance)) * rate_per_km)
    return max(minimum, fee)


def split_evenly(total: int, parts: int) -> list:
    """
    Split ``total`` into ``parts`` integer shares that add up to ``total``.

    Every share gets the floor of the division; the remainder is handed out
    one unit at a time to the first shares.
    """
    if parts <= 0:
        raise ValueError("Can't split into fewer than one share.")
    if total < 0:
        raise ValueError("Can't split a negative amount.")

    share, remainder = divmod(total, parts)
    return [share + 1 if i < remainder else share for i in range(parts)]


def platform_fee_on_sale(subtotal: int, percent: int = None) -> int:
    """The platform's cut of a sale, floored to whole currency units."""
    if percent is None:
        percent = seller_fee_percent()
    if subtotal < 0 or percent < 0:
        raise ValueError("Subtotal and fee percent can't be negative.")
    return subtotal * percent // 100
