"""
Speedtest run: find a server and a device to monitor, then measure download
and upload throughput from the device's byte counters while parallel workers
keep the link busy.

Lookup failures degrade: the client configuration and the server list are
only needed when the server or the device was not given explicitly, and a
failure to fetch them only matters if one of those is still missing.
Measurement failures, (counters unreadable, zero-length window), are fatal.
"""

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence, Tuple

from .config import SpeedtestConfig
from .counters import Clock, CounterSource, find_interface_for_ip, select_clock, select_counter_source
from .errors import ConfigFetchFailure, NoDeviceFound, NoServerFound, SpeedtestError
from .fetcher import RequestsFetcher, latency_url
from .models import DOWNLOAD, UPLOAD, ClientLocation, Server, SpeedtestResult
from .output import format_listing
from .sampler import RateSampler
from .servers import ServerSelector, find_server, load_client_location, load_servers, rank_servers
from .utils import OverflowCorrector
from .workers import TransferWorkerPool, create_upload_payload

# Create module-level logger (not root logger)
_logger = logging.getLogger(__name__)


def set_log_level(level: int = logging.WARNING) -> None:
    """
    Set the logging level for the speedtest package.

    Args:
        level: Logging level (logging.DEBUG, logging.INFO, logging.WARNING, logging.ERROR, logging.CRITICAL)
    """
    logging.getLogger(__package__).setLevel(level)


def silence_warnings() -> None:
    """
    Silence all log output from the speedtest package.

    Example:
        >>> from mini_speedtest.speedtest import silence_warnings
        >>> silence_warnings()  # No more warnings will be shown
    """
    logging.getLogger(__package__).setLevel(logging.CRITICAL + 1)  # above CRITICAL silences everything


@dataclass
class Target:
    """Where to measure: the server, the local device, and what the lookup found."""

    server: Optional[Server] = None
    device: Optional[str] = None
    client: Optional[ClientLocation] = None
    servers: Optional[List[Server]] = None
    error: Optional[str] = None


def _explicit_server(config: SpeedtestConfig) -> Server:
    return Server(id=config.server_id or "", host=config.server, lat=0.0, lon=0.0)


def _servers(config: SpeedtestConfig, fetcher, target: Target, reuse: bool) -> List[Server]:
    if target.servers is None:
        target.servers = load_servers(
            fetcher, config.server_list_url, config.server_list_file,
            reuse=reuse or config.reuse_server_list,
        )
    return target.servers


def lookup(
    config: SpeedtestConfig,
    fetcher,
    selector: ServerSelector,
    interface_lookup: Callable[[str], Optional[str]] = find_interface_for_ip,
) -> Target:
    """
    Fill in whatever the configuration leaves open from the speedtest.net
    client configuration and server list. Never raises on lookup failures;
    the reason is kept in Target.error.
    """
    target = Target(device=config.device)
    if config.server:
        target.server = _explicit_server(config)
    if not config.needs_lookup:
        return target

    try:
        target.client = load_client_location(fetcher, config.client_config_url, config.client_config_file)
    except ConfigFetchFailure as e:
        _logger.warning("%s", e)
        target.error = str(e)
        return target

    if not target.device:
        target.device = interface_lookup(target.client.ip)
    if target.server is None and not config.server_id:
        try:
            target.server = selector.select(target.client, _servers(config, fetcher, target, reuse=False))
        except (ConfigFetchFailure, NoServerFound) as e:
            _logger.warning("%s", e)
            target.error = str(e)
    return target


def resolve_target(
    config: SpeedtestConfig,
    fetcher,
    selector: Optional[ServerSelector] = None,
    interface_lookup: Callable[[str], Optional[str]] = find_interface_for_ip,
) -> Target:
    """
    Determine the server and device for a run.

    Raises:
        NoServerFound: no server given and none could be selected
        NoDeviceFound: no device given and none matches the client IP
        ConfigFetchFailure: a server ID was given but the list is unavailable
    """
    if selector is None:
        selector = ServerSelector(fetcher, config.servcnt, config.random_server)
    target = lookup(config, fetcher, selector, interface_lookup)

    if target.server is None and not config.server_id:
        reason = target.error or "Could not find nearest servers"
        raise NoServerFound(f"{reason} - Please specify a server or server ID!")
    if not target.device:
        if target.client is not None:
            reason = f"Could not find device with IP \"{target.client.ip}\""
        else:
            reason = target.error or "Could not find the device"
        raise NoDeviceFound(f"{reason} - Please specify the device to monitor!")

    # server ID is preferred: look the host up in the (saved) server list
    if config.server_id:
        server = find_server(_servers(config, fetcher, target, reuse=True), config.server_id)
        if server is None:
            raise NoServerFound(f"Could not find \"host\" for server ID {config.server_id}!")
        target.server = server
    return target


def list_nearby(
    config: SpeedtestConfig,
    fetcher,
    selector: Optional[ServerSelector] = None,
    interface_lookup: Callable[[str], Optional[str]] = find_interface_for_ip,
) -> List[str]:
    """Client details and the nearest servers with distance and latency."""
    if selector is None:
        selector = ServerSelector(fetcher, config.servcnt, config.random_server)
    target = lookup(config, fetcher, selector, interface_lookup)
    if target.client is None:
        raise ConfigFetchFailure(config.client_config_url, target.error)

    nearby: List[Tuple[float, Server, Optional[float]]] = []
    ranked = rank_servers(target.client, _servers(config, fetcher, target, reuse=False))
    for distance, server in ranked[: config.servcnt]:
        try:
            latency = fetcher.probe_latency(latency_url(server.host))
        except SpeedtestError as e:
            _logger.debug("Latency probe for server %s failed: %s", server.id, e)
            latency = None
        nearby.append((distance, server, latency))

    server_id = target.server.id if target.server else config.server_id
    return format_listing(target.client, target.device, server_id, nearby)


def measure(
    config: SpeedtestConfig,
    target: Target,
    kinds: Sequence[str],
    fetcher,
    counters: Optional[CounterSource] = None,
    clock: Optional[Clock] = None,
    sleep: Callable[[float], object] = time.sleep,
    process_factory=None,
    on_speed: Optional[Callable[[str, int], None]] = None,
) -> dict:
    """
    Run one measurement window per kind against target.

    Returns:
        {kind: bits per second}
    """
    counters = counters or select_counter_source()
    clock = clock or select_clock()
    sampler = RateSampler(counters, clock, OverflowCorrector(config.counter_width), sleep=sleep)
    pool = TransferWorkerPool(fetcher, config.clients, config.terminate_workers, process_factory)

    speeds = {}
    for kind in kinds:
        if kind == UPLOAD:
            resource = create_upload_payload(config.upload_payload_file, config.upload_size)
        else:
            resource = config.download_size
        result = sampler.measure(pool, kind, target.server, target.device, config.window(kind), resource)
        _logger.info("%s: %d bps", kind, result.bits_per_second)
        speeds[kind] = result.bits_per_second
        if on_speed is not None:
            on_speed(kind, result.bits_per_second)
    return speeds


def run_standard_test(
    config: Optional[SpeedtestConfig] = None,
    fetcher=None,
    counters: Optional[CounterSource] = None,
    clock: Optional[Clock] = None,
    sleep: Callable[[float], object] = time.sleep,
    process_factory=None,
    selector: Optional[ServerSelector] = None,
    interface_lookup: Callable[[str], Optional[str]] = find_interface_for_ip,
    on_target: Optional[Callable[[Target], None]] = None,
    on_speed: Optional[Callable[[str, int], None]] = None,
) -> SpeedtestResult:
    """
    Run a full speedtest: resolve the target, then download and/or upload.

    Args:
        config: Run configuration, (defaults if omitted)
        fetcher: HTTP transport, (RequestsFetcher if omitted)
        counters, clock, sleep, process_factory, selector, interface_lookup:
            Collaborators, replaceable for testing
        on_target: Called once the server and device are known
        on_speed: Called with (kind, bps) after each measurement

    Returns:
        SpeedtestResult with download/upload in bits per second
    """
    config = config or SpeedtestConfig()
    fetcher = fetcher or RequestsFetcher(timeout=config.timeout)
    target = resolve_target(config, fetcher, selector, interface_lookup)
    if on_target is not None:
        on_target(target)

    kinds = [k for k, enabled in ((DOWNLOAD, config.download), (UPLOAD, config.upload)) if enabled]
    speeds = measure(config, target, kinds, fetcher, counters, clock, sleep, process_factory, on_speed)
    server = target.server
    return SpeedtestResult(
        server_id=server.id,
        server_host=server.host,
        sponsor=server.sponsor,
        name=server.name,
        download_bps=speeds.get(DOWNLOAD),
        upload_bps=speeds.get(UPLOAD),
        timestamp=datetime.now(timezone.utc),
    )
