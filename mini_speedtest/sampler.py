"""Throughput measurement from interface byte counters"""

import logging
import time
from typing import Any, Callable

from .counters import Clock, CounterSource
from .errors import CounterUnavailable, TimingUnavailable
from .models import DIRECTIONS, CounterSample, MeasurementWindow, RateResult, Server
from .utils import OverflowCorrector, truncating_div
from .workers import TransferWorkerPool

_logger = logging.getLogger(__name__)


def compute_rate(byte_delta: int, elapsed: int, duration: int) -> int:
    """
    Convert a byte delta over `elapsed` hundredths of a second into bits/sec.

    The uptime clock ticks at 100Hz, so the window rarely lasts exactly
    `duration` seconds; the bit count is rescaled linearly to the nominal
    window before dividing. Integer arithmetic throughout.

    Args:
        byte_delta: Bytes transferred during the window
        elapsed: Measured window length in hundredths of a second
        duration: Nominal window length in seconds

    Returns:
        Bits per second, truncated to an integer
    """
    if elapsed <= 0:
        raise TimingUnavailable(elapsed)
    if duration <= 0:
        raise ValueError("duration must be positive")
    bits = byte_delta * 8
    expected = duration * 100
    bits -= truncating_div(bits, elapsed) * (elapsed - expected)
    return truncating_div(bits, duration)


class RateSampler:
    """
    Runs one measurement window while a worker pool loads the link.

    Args:
        counters: Byte counter source
        clock: Clock reporting hundredths of a second
        corrector: Applied to both the byte counters and the clock
        sleep: Injected for tests
    """

    def __init__(
        self,
        counters: CounterSource,
        clock: Clock,
        corrector: OverflowCorrector,
        sleep: Callable[[float], Any] = time.sleep,
    ):
        self.counters = counters
        self.clock = clock
        self.corrector = corrector
        self._sleep = sleep

    def sample(self, interface: str, direction: str) -> CounterSample:
        value = self.counters.sample(interface, direction)
        return CounterSample(bytes=value, timestamp=self.clock.now())

    def measure(
        self,
        pool: TransferWorkerPool,
        kind: str,
        server: Server,
        interface: str,
        window: MeasurementWindow,
        resource: Any,
    ) -> RateResult:
        direction = DIRECTIONS[kind]
        handle = pool.start(kind, window.repeat, server, resource)
        try:
            # ramp-up is not part of the window
            self._sleep(window.ramp_up)
            start = self.sample(interface, direction)
            self._sleep(window.duration)
            end = self.sample(interface, direction)
        finally:
            pool.stop(handle)

        byte_delta = self.corrector.correct(start.bytes, end.bytes)
        elapsed = self.corrector.correct(start.timestamp, end.timestamp)
        _logger.debug(
            "%s window: %d bytes in %d/100 s (bytes %d -> %d, clock %d -> %d)",
            kind, byte_delta, elapsed, start.bytes, end.bytes, start.timestamp, end.timestamp,
        )
        if byte_delta < 0:
            raise CounterUnavailable(
                interface, f"Byte counter for \"{interface}\" went backwards ({start.bytes} -> {end.bytes})"
            )
        bps = compute_rate(byte_delta, elapsed, window.duration)
        return RateResult(direction=direction, byte_delta=byte_delta, elapsed=elapsed, bits_per_second=bps)
