"""Data model shared by the speedtest components"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

DOWNLOAD = "download"
UPLOAD = "upload"

# counter direction read for each kind of transfer
DIRECTIONS = {DOWNLOAD: "rx", UPLOAD: "tx"}


@dataclass(frozen=True)
class Server:
    """A candidate speedtest server, as listed in the server dataset."""

    id: str
    host: str  # "hostname:port"
    lat: float
    lon: float
    sponsor: str = ""
    name: str = ""
    country: str = ""

    @classmethod
    def from_record(cls, record: dict) -> "Server":
        return cls(
            id=record["id"],
            host=record["host"],
            lat=float(record["lat"]),
            lon=float(record["lon"]),
            sponsor=record.get("sponsor", ""),
            name=record.get("name", ""),
            country=record.get("country", ""),
        )


@dataclass(frozen=True)
class ClientLocation:
    """Where the speedtest service thinks this client is."""

    ip: str
    lat: float
    lon: float
    isp: str = ""
    isprating: str = ""
    country: str = ""

    @classmethod
    def from_record(cls, record: dict) -> "ClientLocation":
        return cls(
            ip=record.get("ip", ""),
            lat=float(record["lat"]),
            lon=float(record["lon"]),
            isp=record.get("isp", ""),
            isprating=record.get("isprating", ""),
            country=record.get("country", ""),
        )


@dataclass(frozen=True)
class MeasurementWindow:
    """Parameters of one up- or download measurement."""

    duration: int  # seconds
    clients: int
    repeat: int
    resource_size: int  # bytes (upload) or image dimension (download)
    ramp_up: float = 1.0

    def __post_init__(self):
        if self.duration <= 0:
            raise ValueError("duration must be positive")
        if self.clients < 1:
            raise ValueError("clients must be at least 1")
        if self.repeat < 1:
            raise ValueError("repeat count must be at least 1")
        if self.ramp_up < 0:
            raise ValueError("ramp_up cannot be negative")


@dataclass(frozen=True)
class CounterSample:
    """Byte counter reading together with the clock, in hundredths of a second."""

    bytes: int
    timestamp: int


@dataclass(frozen=True)
class RateResult:
    """Outcome of one sampling window."""

    direction: str  # "rx" or "tx"
    byte_delta: int
    elapsed: int  # hundredths of a second
    bits_per_second: int


@dataclass(frozen=True)
class SpeedtestResult:
    """Result of a full run. Speeds in bits per second, None when not measured."""

    server_id: str
    server_host: str
    sponsor: str
    name: str
    download_bps: Optional[int]
    upload_bps: Optional[int]
    timestamp: Optional[datetime] = None
