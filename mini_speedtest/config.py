"""Run configuration. Built once, (from defaults or the command line), then read-only."""

import os
import tempfile
from dataclasses import dataclass, field
from typing import Optional

from .models import DOWNLOAD, MeasurementWindow
from .utils import CounterWidth

VALID_UPLOAD_SIZES = (32768, 65536, 131072, 262144, 524288, 1048576, 7340032)
VALID_DOWNLOAD_SIZES = (350, 500, 750, 1000, 1500, 2000, 2500, 3000, 3500, 4000)

SERVER_LIST_URL = "https://speedtest.net/speedtest-servers.php"
CLIENT_CONFIG_URL = "https://speedtest.net/speedtest-config.php"

RAMP_UP_SECONDS = 1


def _tmp(name: str) -> str:
    return os.path.join(tempfile.gettempdir(), name)


@dataclass(frozen=True)
class SpeedtestConfig:
    download: bool = True
    upload: bool = True
    duration: int = 4
    clients: int = 4
    servcnt: int = 5
    random_server: bool = False
    list_only: bool = False
    field_separator: Optional[str] = None  # None -> text output
    terminate_workers: bool = False
    counter_width: CounterWidth = CounterWidth.NATIVE
    download_size: int = 1500
    upload_size: int = 524288
    download_count: int = 4
    upload_count: int = 4
    server: Optional[str] = None  # "host:port"
    server_id: Optional[str] = None
    device: Optional[str] = None
    server_list_url: str = SERVER_LIST_URL
    client_config_url: str = CLIENT_CONFIG_URL
    reuse_server_list: bool = False
    server_list_file: str = field(default_factory=lambda: _tmp("speedtest-servers.xml"))
    client_config_file: str = field(default_factory=lambda: _tmp("speedtest-config.php"))
    upload_payload_file: str = field(default_factory=lambda: _tmp("speedtest-post.dat"))
    timeout: int = 15
    ramp_up: float = RAMP_UP_SECONDS

    def __post_init__(self):
        if self.duration <= 0:
            raise ValueError("duration must be positive")
        if self.clients < 1:
            raise ValueError("clients must be at least 1")
        if self.servcnt < 1:
            raise ValueError("servcnt must be at least 1")
        if self.download_count < 1 or self.upload_count < 1:
            raise ValueError("repeat counts must be at least 1")
        if self.download_size not in VALID_DOWNLOAD_SIZES:
            raise ValueError(f"Invalid downsize: {self.download_size}")
        if self.upload_size not in VALID_UPLOAD_SIZES:
            raise ValueError(f"Invalid upsize: {self.upload_size}")
        if self.field_separator == "":
            raise ValueError("field separator cannot be empty")

    @property
    def csv(self) -> bool:
        return self.field_separator is not None

    @property
    def needs_lookup(self) -> bool:
        """Whether the client config has to be fetched before testing."""
        return (not self.server and not self.server_id) or not self.device or self.list_only

    def window(self, kind: str) -> MeasurementWindow:
        if kind == DOWNLOAD:
            repeat, size = self.download_count, self.download_size
        else:
            repeat, size = self.upload_count, self.upload_size
        return MeasurementWindow(
            duration=self.duration,
            clients=self.clients,
            repeat=repeat,
            resource_size=size,
            ramp_up=self.ramp_up,
        )
