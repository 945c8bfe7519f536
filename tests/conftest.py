"""Fake collaborators shared by the test suite."""

import pytest

from mini_speedtest.errors import TransferFailure
from mini_speedtest.models import ClientLocation, Server

SERVERS_XML = """<?xml version="1.0" encoding="UTF-8"?>
<settings>
<servers>
<server url="http://near.example.net:8080/speedtest/upload.php" lat="53.3500" lon="-6.2600" name="Dublin" country="Ireland" cc="IE" sponsor="ACME" id="1234" host="near.example.net:8080" />
<server url="http://mid.example.net:8080/speedtest/upload.php" lat="53.8000" lon="-6.2600" name="Drogheda" country="Ireland" cc="IE" sponsor="Mid ISP" id="2345" host="mid.example.net:8080" />
<server url="http://far.example.net:8080/speedtest/upload.php" lat="58.0000" lon="-6.2600" name="Far Away" country="UK" cc="GB" sponsor="Far ISP" id="3456" host="far.example.net:8080" />
</servers>
</settings>
"""

CONFIG_XML = """<?xml version="1.0" encoding="UTF-8"?>
<settings>
<client ip="203.0.113.7" lat="53.3331" lon="-6.2489" isp="Example Telecom" isprating="3.7" rating="0" ispdlavg="0" ispulavg="0" loggedin="0" country="IE" />
<server-config threadcount="4" ignoreids="" notonmap="" forcepingid="" preferredserverid=""/>
</settings>
"""


class FakeFetcher:
    """Serves canned documents and latencies, and records every call."""

    def __init__(self, documents=None, latencies=None):
        self.documents = documents or {}
        self.latencies = latencies or {}
        self.fetched = []
        self.posted = []
        self.probed = []
        self.resets = 0

    def reset(self):
        self.resets += 1

    def fetch_to_file(self, url, path=None):
        self.fetched.append(url)
        if path is None:
            return True
        text = self.documents.get(url)
        if text is None:
            return False
        with open(path, "w") as f:
            f.write(text)
        return True

    def post_file(self, url, path):
        self.posted.append((url, path))
        return True

    def probe_latency(self, url):
        host = url.split("/")[2]
        self.probed.append(host)
        latency = self.latencies.get(host)
        if latency is None:
            raise TransferFailure(url, "unreachable")
        return latency


class FakeCounters:
    """Returns queued readings per direction."""

    def __init__(self, rx=(), tx=(), events=None):
        self.readings = {"rx": list(rx), "tx": list(tx)}
        self.events = events if events is not None else []

    def available(self):
        return True

    def sample(self, interface, direction):
        self.events.append(("sample", interface, direction))
        return self.readings[direction].pop(0)


class FakeClock:
    def __init__(self, ticks=(), events=None):
        self.ticks = list(ticks)
        self.events = events if events is not None else []

    def now(self):
        self.events.append(("clock",))
        return self.ticks.pop(0)


class FakeProcess:
    """Stands in for multiprocessing.Process. Dies after `lives` terminate/kill calls."""

    def __init__(self, target=None, args=(), name=None, daemon=None, lives=1):
        self.target = target
        self.args = args
        self.name = name
        self.daemon = daemon
        self.lives = lives
        self.started = False
        self.terminated = 0
        self.killed = 0
        self.joins = 0

    def start(self):
        self.started = True

    def is_alive(self):
        return self.started and self.lives > 0

    def terminate(self):
        self.terminated += 1
        self.lives -= 1

    def kill(self):
        self.killed += 1
        self.lives = 0

    def join(self, timeout=None):
        self.joins += 1


class FakeProcessFactory:
    def __init__(self, lives=1):
        self.lives = lives
        self.created = []

    def __call__(self, **kwargs):
        process = FakeProcess(lives=self.lives, **kwargs)
        self.created.append(process)
        return process


class FakePool:
    """Records start/stop without launching anything."""

    def __init__(self, events=None):
        self.events = events if events is not None else []
        self.started = []

    def start(self, kind, repeat, server, resource):
        self.events.append(("start", kind))
        self.started.append((kind, repeat, server, resource))
        return kind

    def stop(self, handle):
        self.events.append(("stop", handle))
        return True


class RecordingSleep:
    def __init__(self, events=None):
        self.events = events if events is not None else []

    def __call__(self, seconds):
        self.events.append(("sleep", seconds))


@pytest.fixture
def client():
    return ClientLocation(ip="203.0.113.7", lat=53.35, lon=-6.26, isp="Example Telecom", country="IE")


@pytest.fixture
def make_server():
    def factory(server_id, km_north=0.0, client_lat=53.35, lon=-6.26, **kwargs):
        # same longitude as the client, so the estimate is km_north exactly
        return Server(id=server_id, host=f"{server_id}.example.net:8080",
                      lat=client_lat + km_north / 110.25, lon=lon, **kwargs)
    return factory


@pytest.fixture
def events():
    return []
