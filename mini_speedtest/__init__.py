"""mini_speedtest - speedtest.net measurements from interface byte counters"""

__version__ = "1.0.0"

from .config import SpeedtestConfig
from .errors import (
    ConfigFetchFailure,
    CounterUnavailable,
    NoDeviceFound,
    NoServerFound,
    SpeedtestError,
    TimingUnavailable,
    TransferFailure,
)
from .models import SpeedtestResult
from .speedtest import run_standard_test, set_log_level, silence_warnings

__all__ = [
    'SpeedtestConfig',
    'SpeedtestResult',
    'SpeedtestError',
    'ConfigFetchFailure',
    'CounterUnavailable',
    'NoDeviceFound',
    'NoServerFound',
    'TimingUnavailable',
    'TransferFailure',
    'run_standard_test',
    'set_log_level',
    'silence_warnings',
]
