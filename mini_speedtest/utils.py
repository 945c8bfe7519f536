"""Utility functions for speedtest calculations"""

import enum
import math
from typing import Optional

# km per degree used by the planar distance estimate
KM_PER_DEGREE = 110.25

NARROW_MODULUS = 2 ** 32


def estimate_distance(client_lat: float, client_lon: float, server_lat: float, server_lon: float) -> float:
    """
    Estimate the distance in km between a client and a server.

    Uses a flat-earth approximation, (longitude scaled by the cosine of the
    client's latitude), rather than the haversine formula. The latitude is
    passed to cos() as its raw degree value, so the longitude scale is not a
    true cos(latitude). The result is only good for ranking nearby servers
    against each other.

    Args:
        client_lat, client_lon: Client coordinates in degrees
        server_lat, server_lon: Server coordinates in degrees

    Returns:
        Estimated distance in kilometres
    """
    dx = server_lat - client_lat
    dy = (server_lon - client_lon) * math.cos(client_lat)
    return KM_PER_DEGREE * math.sqrt(dx * dx + dy * dy)


def truncating_div(numerator: int, denominator: int) -> int:
    """Integer division rounding towards zero."""
    quotient = abs(numerator) // abs(denominator)
    return quotient if (numerator >= 0) == (denominator > 0) else -quotient


class CounterWidth(enum.Enum):
    NATIVE = "native"
    NARROW = "narrow"


class OverflowCorrector:
    """
    Reconstruct the delta between two readings of a wrapping counter.

    In NARROW mode both readings are reduced to the counter's modulus and,
    if the end reading is below the start reading, exactly one wraparound is
    assumed. Two or more wraps within one window go undetected; at sub-gigabit
    rates and the default window this cannot happen with a 32-bit counter.
    """

    def __init__(self, width: CounterWidth = CounterWidth.NATIVE, modulus: Optional[int] = None):
        if modulus is not None and modulus <= 0:
            raise ValueError("modulus must be positive")
        self.width = width
        self.modulus = modulus or NARROW_MODULUS

    def correct(self, start: int, end: int) -> int:
        """
        Return the counter delta between two readings.

        Args:
            start: Reading at the start of the window
            end: Reading at the end of the window

        Returns:
            end - start, compensated for one wraparound in NARROW mode
        """
        if self.width is CounterWidth.NATIVE:
            return end - start
        start %= self.modulus
        end %= self.modulus
        if start > end:
            end += self.modulus
        return end - start
