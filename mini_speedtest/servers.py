"""Client location, candidate servers and picking one to test against"""

import logging
import os
import random
import re
import xml.etree.ElementTree as ET
from typing import Dict, List, Optional, Sequence, Tuple

from .errors import ConfigFetchFailure, NoServerFound, TransferFailure
from .fetcher import latency_url
from .models import ClientLocation, Server
from .utils import estimate_distance

_logger = logging.getLogger(__name__)

SERVER_FIELDS = ("id", "lat", "lon", "host")
CLIENT_FIELDS = ("lat", "lon")

_ATTRIBUTE = re.compile(r'([A-Za-z_][\w-]*)="([^"]*)"')


def parse_records(text: str, tag: str) -> List[Dict[str, str]]:
    """
    Return the attributes of every <tag .../> element in text.

    Well-formed documents go through ElementTree. Anything it rejects is
    scanned line by line for '<tag' followed by key="value" pairs, which is
    enough for the flat attribute-only records served by speedtest.net.
    """
    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        _logger.debug("Malformed <%s> document (%s), scanning attributes", tag, e)
        records = []
        opener = f"<{tag} "
        for line in text.splitlines():
            start = line.find(opener)
            if start < 0:
                continue
            records.append(dict(_ATTRIBUTE.findall(line[start:])))
        return records
    if root.tag == tag:
        return [dict(root.attrib)]
    return [dict(el.attrib) for el in root.iter(tag)]


def _complete(record: Dict[str, str], fields: Sequence[str]) -> bool:
    return all(record.get(f) for f in fields)


def parse_servers(text: str) -> List[Server]:
    servers = []
    for record in parse_records(text, "server"):
        if not _complete(record, SERVER_FIELDS):
            continue
        try:
            servers.append(Server.from_record(record))
        except ValueError:
            _logger.debug("Skipping server with bad coordinates: %s", record.get("id"))
    return servers


def parse_client(text: str) -> Optional[ClientLocation]:
    for record in parse_records(text, "client"):
        if not _complete(record, CLIENT_FIELDS):
            continue
        try:
            return ClientLocation.from_record(record)
        except ValueError:
            _logger.debug("Unknown location: lat=%r lon=%r", record.get("lat"), record.get("lon"))
    return None


def _read(path: str) -> str:
    with open(path, encoding="utf-8", errors="replace") as f:
        return f.read()


def load_client_location(fetcher, url: str, path: str) -> ClientLocation:
    """Fetch the client configuration and parse the <client> record."""
    if not fetcher.fetch_to_file(url, path):
        raise ConfigFetchFailure(url)
    try:
        client = parse_client(_read(path))
    except OSError as e:
        raise ConfigFetchFailure(url, e) from e
    if client is None:
        raise ConfigFetchFailure(url, "no client record")
    return client


def load_servers(fetcher, url: str, path: str, reuse: bool = False) -> List[Server]:
    """
    Fetch the candidate server list, (or reuse the saved copy at path).
    """
    if not (reuse and os.access(path, os.R_OK)):
        if os.path.exists(path):
            os.remove(path)
        if not fetcher.fetch_to_file(url, path):
            raise ConfigFetchFailure(url)
    try:
        servers = parse_servers(_read(path))
    except OSError as e:
        raise ConfigFetchFailure(url, e) from e
    if not servers:
        raise ConfigFetchFailure(url, "no servers listed")
    _logger.debug("Loaded %d servers from %s", len(servers), path)
    return servers


def find_server(servers: Sequence[Server], server_id: str) -> Optional[Server]:
    for server in servers:
        if server.id == server_id:
            return server
    return None


def rank_servers(client: ClientLocation, servers: Sequence[Server]) -> List[Tuple[float, Server]]:
    """(distance, server) pairs, closest first."""
    ranked = [(estimate_distance(client.lat, client.lon, s.lat, s.lon), s) for s in servers]
    ranked.sort(key=lambda pair: pair[0])
    return ranked


def latency_hundredths(seconds: float) -> int:
    return int(round(seconds * 100))


class ServerSelector:
    """
    Picks a server among the `servcnt` closest candidates.

    By default each of them gets one latency probe and the fastest wins. On
    equal latency, (compared in hundredths of a second), a coin flip decides
    whether the later server replaces the current best; with three or more
    ties this favours the last ones in distance order. With randomize=True
    one of the nearby servers is picked without probing.
    """

    def __init__(self, fetcher, servcnt: int = 5, randomize: bool = False, rng: Optional[random.Random] = None):
        if servcnt < 1:
            raise ValueError("servcnt must be at least 1")
        self.fetcher = fetcher
        self.servcnt = servcnt
        self.randomize = randomize
        self._random = rng or random.Random()

    def nearby(self, client: ClientLocation, servers: Sequence[Server]) -> List[Server]:
        return [s for _, s in rank_servers(client, servers)[: self.servcnt]]

    def probe(self, server: Server) -> Optional[int]:
        """Latency in hundredths of a second, or None if the probe failed."""
        try:
            return latency_hundredths(self.fetcher.probe_latency(latency_url(server.host)))
        except TransferFailure as e:
            _logger.debug("Latency probe for server %s failed: %s", server.id, e)
            return None

    def select(self, client: ClientLocation, servers: Sequence[Server]) -> Server:
        candidates = self.nearby(client, servers)
        if not candidates:
            raise NoServerFound()
        if self.randomize:
            return self._random.choice(candidates)

        best: Optional[Server] = None
        best_latency = None
        for server in candidates:
            latency = self.probe(server)
            if latency is None:
                continue
            _logger.debug("Server %s (%s): latency %d/100 s", server.id, server.host, latency)
            if (
                best_latency is None
                or latency < best_latency
                or (latency == best_latency and self._random.randrange(2) == 0)
            ):
                best, best_latency = server, latency
        if best is None:
            raise NoServerFound("No nearby server answered the latency probe")
        return best
