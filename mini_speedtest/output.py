"""Rendering of results as text or as a speedtest-cli compatible CSV record"""

from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple

from .models import DOWNLOAD, ClientLocation, Server, SpeedtestResult

# Columns of the record produced by format_csv(), in speedtest-cli order
CSV_HEADER = ("Server ID", "Sponsor", "Server Name", "Timestamp", "Distance", "Ping", "Download", "Upload", "Share", "IP Address")


def format_timestamp(ts: datetime) -> str:
    """UTC ISO-8601 to the second, microseconds always zero, e.g. 2021-03-04T05:06:07.000000Z"""
    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc)
    return ts.replace(microsecond=0).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def format_header(server_id: str, host: str) -> List[str]:
    return [f"Server ID: {server_id}", f"Server: {host}"]


def format_speed(kind: str, bps: int) -> str:
    label = "Download" if kind == DOWNLOAD else "Upload"
    return f"{label} speed: {bps} bps"


def format_text(result: SpeedtestResult) -> List[str]:
    lines = format_header(result.server_id, result.server_host)
    if result.download_bps is not None:
        lines.append(format_speed("download", result.download_bps))
    if result.upload_bps is not None:
        lines.append(format_speed("upload", result.upload_bps))
    return lines


def _value(bps: Optional[int]) -> str:
    return "" if bps is None else str(bps)


def format_csv(result: SpeedtestResult, separator: str = ",", timestamp: Optional[datetime] = None) -> str:
    """
    One record with the fields of CSV_HEADER.

    Sponsor and server name are wrapped in double quotes only when the
    separator is a comma; distance, ping, share and IP are left empty.
    """
    quote = '"' if separator == "," else ""
    ts = timestamp or result.timestamp or datetime.now(timezone.utc)
    fields = [
        result.server_id,
        f"{quote}{result.sponsor}{quote}",
        f"{quote}{result.name}{quote}",
        format_timestamp(ts),
        "",
        "",
        _value(result.download_bps),
        _value(result.upload_bps),
        "",
        "",
    ]
    return separator.join(fields)


def format_listing(
    client: ClientLocation,
    interface: Optional[str],
    server_id: Optional[str],
    nearby: Sequence[Tuple[float, Server, Optional[float]]],
) -> List[str]:
    """
    Client details followed by the nearby servers.

    Args:
        nearby: (distance km, server, latency seconds or None) triples
    """
    lines = [
        f"IP: {client.ip}",
        f"Interface: {interface or ''}",
        f"ISP: {client.isp}",
        f"ISP Rating: {client.isprating}",
        f"Latitude: {client.lat}",
        f"Longitude: {client.lon}",
        f"Country: {client.country}",
        f"Server ID: {server_id or ''}",
        "Nearest Servers:",
    ]
    for i, (distance, server, latency) in enumerate(nearby, start=1):
        shown = f"{latency:.2f}" if latency is not None else "failed"
        lines.append(
            f"Server #{i}: id={server.id}, serv={server.host}, lat={server.lat}, lon={server.lon}, "
            f"dist={int(distance)}km, latency={shown}"
        )
    return lines
