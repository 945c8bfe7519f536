"""Exceptions raised by the speedtest"""


class SpeedtestError(Exception):
    """Base class for all speedtest failures"""


class CounterUnavailable(SpeedtestError):
    """Raised when no interface statistics source can be read"""

    def __init__(self, interface: str = "", message: str = ""):
        self.interface = interface
        if not message:
            message = f"Could not read byte counters for device \"{interface}\"" if interface \
                else "No interface statistics source available"
        super().__init__(message)


class TimingUnavailable(SpeedtestError):
    """Raised when the sampling window measured as zero (or negative) time"""

    def __init__(self, elapsed: int = 0, message: str = ""):
        self.elapsed = elapsed
        if not message:
            message = f"Sampling window measured {elapsed} hundredths of a second, cannot compute a rate"
        super().__init__(message)


class NoServerFound(SpeedtestError):
    """Raised when server selection yields nothing"""

    def __init__(self, message: str = "Could not find nearest servers"):
        super().__init__(message)


class TransferFailure(SpeedtestError):
    """A single GET/POST failed. Never surfaced by the worker pool."""

    def __init__(self, url: str, reason: object = None):
        self.url = url
        self.reason = reason
        message = f"Transfer failed for {url}"
        if reason is not None:
            message = f"{message}: {reason}"
        super().__init__(message)


class ConfigFetchFailure(SpeedtestError):
    """Raised when the client config or the server list cannot be retrieved"""

    def __init__(self, url: str, reason: object = None):
        self.url = url
        self.reason = reason
        message = f"Could not retrieve \"{url}\""
        if reason is not None:
            message = f"{message} ({reason})"
        super().__init__(message)


class NoDeviceFound(SpeedtestError):
    """Raised when the interface to monitor cannot be determined"""

    def __init__(self, message: str = "Could not find the device to monitor"):
        super().__init__(message)
