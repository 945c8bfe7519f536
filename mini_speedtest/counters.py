"""Interface byte counters and the uptime clock used to time samples"""

import logging
import os
import re
import socket
import subprocess
import time
from pathlib import Path
from typing import Callable, List, Optional, Protocol

import psutil

from .errors import CounterUnavailable

_logger = logging.getLogger(__name__)

SYSFS_NET = "/sys/class/net"
PROC_UPTIME = "/proc/uptime"

# 0-based column of the byte counters in BSD "netstat -idb" output
NETSTAT_COLUMNS = {"rx": 7, "tx": 10}


class CounterSource(Protocol):
    """Anything that can report cumulative bytes for an interface."""

    def available(self) -> bool:
        ...

    def sample(self, interface: str, direction: str) -> int:
        ...


class Clock(Protocol):
    def now(self) -> int:
        """Current time in hundredths of a second."""
        ...


def _check_direction(direction: str) -> None:
    if direction not in ("rx", "tx"):
        raise ValueError(f"direction must be 'rx' or 'tx', not {direction!r}")


class SysfsCounterSource:
    """Reads /sys/class/net/<interface>/statistics/<rx|tx>_bytes."""

    def __init__(self, root: str = SYSFS_NET):
        self.root = Path(root)

    def available(self) -> bool:
        return self.root.is_dir()

    def sample(self, interface: str, direction: str) -> int:
        _check_direction(direction)
        path = self.root / interface / "statistics" / f"{direction}_bytes"
        try:
            return int(path.read_text().strip())
        except (OSError, ValueError) as e:
            raise CounterUnavailable(interface, f"Could not read {path}: {e}") from e


class PsutilCounterSource:
    """Per-NIC counters from psutil, for platforms without sysfs."""

    def available(self) -> bool:
        try:
            return bool(psutil.net_io_counters(pernic=True))
        except (OSError, RuntimeError):
            return False

    def sample(self, interface: str, direction: str) -> int:
        _check_direction(direction)
        counters = psutil.net_io_counters(pernic=True)
        stats = counters.get(interface)
        if stats is None:
            raise CounterUnavailable(interface)
        return stats.bytes_recv if direction == "rx" else stats.bytes_sent


def parse_netstat_bytes(output: str, interface: str, direction: str) -> Optional[int]:
    """
    Pull a byte counter for an interface out of "netstat -idb" output.

    The interface is matched with its digits stripped, so "em0" matches a
    renamed "em1", and only the "<Link#n>" row is used, (the address rows
    repeat the counters per protocol).

    Returns:
        The byte count, or None if no matching row was found
    """
    _check_direction(direction)
    stem = re.sub(r"[0-9]", "", interface)
    column = NETSTAT_COLUMNS[direction]
    for line in output.splitlines():
        if stem not in line or "Link" not in line:
            continue
        fields = line.split()
        if len(fields) <= column:
            continue
        try:
            return int(fields[column])
        except ValueError:
            continue
    return None


class NetstatCounterSource:
    """Falls back to parsing the BSD-style "netstat -idb" interface table."""

    command = ["netstat", "-idb"]

    def __init__(self, runner: Callable[..., subprocess.CompletedProcess] = subprocess.run):
        self._run = runner

    def _output(self) -> str:
        completed = self._run(self.command, capture_output=True, text=True, timeout=10)
        if completed.returncode != 0:
            raise OSError(f"netstat exited with {completed.returncode}")
        return completed.stdout

    def available(self) -> bool:
        try:
            self._output()
        except (OSError, subprocess.SubprocessError):
            return False
        return True

    def sample(self, interface: str, direction: str) -> int:
        try:
            output = self._output()
        except (OSError, subprocess.SubprocessError) as e:
            raise CounterUnavailable(interface, f"netstat failed: {e}") from e
        value = parse_netstat_bytes(output, interface, direction)
        if value is None:
            raise CounterUnavailable(interface)
        return value


def select_counter_source(candidates: Optional[List[CounterSource]] = None) -> CounterSource:
    """Return the first counter source that works on this system."""
    if candidates is None:
        candidates = [SysfsCounterSource(), PsutilCounterSource(), NetstatCounterSource()]
    for source in candidates:
        if source.available():
            _logger.debug("Using counter source %s", type(source).__name__)
            return source
    raise CounterUnavailable()


def parse_uptime(text: str) -> int:
    """'12345.67 9876.54' -> 1234567 (hundredths of a second)."""
    first = text.split()[0]
    seconds, _, fraction = first.partition(".")
    return int(seconds) * 100 + int((fraction + "00")[:2])


class UptimeClock:
    """System uptime from /proc/uptime, in hundredths of a second."""

    def __init__(self, path: str = PROC_UPTIME):
        self.path = path

    def available(self) -> bool:
        return os.access(self.path, os.R_OK)

    def now(self) -> int:
        with open(self.path) as f:
            return parse_uptime(f.read())


class MonotonicClock:
    """Wall clock fallback where /proc/uptime is missing."""

    def available(self) -> bool:
        return True

    def now(self) -> int:
        return int(time.monotonic() * 100)


def select_clock() -> Clock:
    clock = UptimeClock()
    if clock.available():
        return clock
    _logger.debug("%s not readable, timing samples with the monotonic clock", PROC_UPTIME)
    return MonotonicClock()


def find_interface_for_ip(ip: str) -> Optional[str]:
    """
    Find the interface that carries the given address.

    Used to pick the device to monitor from the externally visible IP. Behind
    NAT no local interface has that address and None is returned.
    """
    if not ip:
        return None
    for name, addresses in psutil.net_if_addrs().items():
        for addr in addresses:
            if addr.family in (socket.AF_INET, socket.AF_INET6) and addr.address.split("%")[0] == ip:
                return name
    return None
