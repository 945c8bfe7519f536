"""Tests for option parsing and the command line entry point."""

import pytest

from conftest import CONFIG_XML, SERVERS_XML, FakeClock, FakeCounters, FakeFetcher, FakeProcessFactory, RecordingSleep
from mini_speedtest.cli import main
from mini_speedtest.config import CLIENT_CONFIG_URL, SERVER_LIST_URL
from mini_speedtest.options import build_parser, config_from_args
from mini_speedtest.utils import CounterWidth


def parse(*argv):
    return config_from_args(build_parser().parse_args(list(argv)))


class TestOptions:

    def test_defaults(self):
        config = parse()
        assert config.download and config.upload
        assert config.duration == 4
        assert config.clients == 4
        assert config.servcnt == 5
        assert not config.csv
        assert config.counter_width is CounterWidth.NATIVE
        assert config.server_list_url == SERVER_LIST_URL
        assert config.client_config_url == CLIENT_CONFIG_URL

    def test_download_only(self):
        config = parse("-D")
        assert config.download and not config.upload

    def test_upload_only(self):
        config = parse("-U")
        assert config.upload and not config.download

    def test_both_flags_mean_both(self):
        config = parse("-D", "-U")
        assert config.download and config.upload

    def test_csv(self):
        assert parse("-csv").field_separator == ","
        assert parse("-fs", ";").field_separator == ";"

    def test_narrow_counters(self):
        assert parse("-32").counter_width is CounterWidth.NARROW

    def test_measurement_options(self):
        config = parse("-t", "10", "-c", "8", "-n", "3", "-R", "-k", "-ds", "350", "-us", "32768",
                       "-dc", "2", "-uc", "6", "--timeout", "30")
        assert (config.duration, config.clients, config.servcnt) == (10, 8, 3)
        assert config.random_server and config.terminate_workers
        assert (config.download_size, config.upload_size) == (350, 32768)
        assert (config.download_count, config.upload_count) == (2, 6)
        assert config.timeout == 30

    def test_target_options(self):
        config = parse("-s", "speed.example.net:8080", "-d", "eth0", "-r", "-url", "http://list", "-l")
        assert config.server == "speed.example.net:8080"
        assert config.device == "eth0"
        assert config.reuse_server_list
        assert config.server_list_url == "http://list"
        assert config.list_only
        assert config.needs_lookup

    def test_server_id(self):
        assert parse("-i", "1234").server_id == "1234"

    @pytest.mark.parametrize("argv", [
        ["-ds", "123"],
        ["-us", "1000"],
        ["-s", "h:80", "-i", "1234"],
        ["-csv", "-fs", ";"],
        ["-t", "four"],
    ])
    def test_rejected(self, argv):
        with pytest.raises(SystemExit):
            build_parser().parse_args(argv)

    def test_invalid_values(self):
        with pytest.raises(ValueError):
            parse("-t", "0")
        with pytest.raises(ValueError):
            parse("-c", "0")


class TestMain:

    def collaborators(self, ticks=(0, 400, 1000, 1400)):
        return dict(
            counters=FakeCounters(rx=[0, 2_000_000], tx=[0, 1_000_000]),
            clock=FakeClock(ticks),
            sleep=RecordingSleep(),
            process_factory=FakeProcessFactory(),
        )

    def test_text_output(self, capsys):
        status = main(["-s", "speed.example.net:8080", "-d", "eth0", "-D"],
                      fetcher=FakeFetcher(), **self.collaborators(ticks=(0, 400)))
        out = capsys.readouterr().out.splitlines()
        assert status == 0
        assert out == ["Server ID: ", "Server: speed.example.net:8080", "Download speed: 4000000 bps"]

    def test_csv_output(self, capsys):
        status = main(["-s", "speed.example.net:8080", "-d", "eth0", "-D", "-csv"],
                      fetcher=FakeFetcher(), **self.collaborators(ticks=(0, 400)))
        out = capsys.readouterr().out.splitlines()
        assert status == 0
        assert len(out) == 1
        fields = out[0].split(",")
        assert len(fields) == 10
        assert fields[1:3] == ['""', '""']
        assert fields[6] == "4000000"
        assert fields[7] == ""

    def test_lookup_failure(self, capsys):
        status = main(["-d", "eth0", "-cfgurl", "http://cfg.example.net/config"], fetcher=FakeFetcher())
        err = capsys.readouterr().err
        assert status == 1
        assert "Please specify a server or server ID!" in err

    def test_invalid_configuration(self, capsys):
        status = main(["-t", "0", "-s", "h:80", "-d", "eth0"], fetcher=FakeFetcher())
        err = capsys.readouterr().err
        assert status == 1
        assert "Error: duration must be positive" in err

    def test_invalid_option_exits(self):
        with pytest.raises(SystemExit):
            main(["-ds", "123"])

    def test_listing(self, capsys, tmp_path):
        fetcher = FakeFetcher(
            documents={"http://cfg/config": CONFIG_XML, "http://cfg/servers": SERVERS_XML},
            latencies={"near.example.net:8080": 0.01},
        )
        status = main(["-l", "-n", "2", "-cfgurl", "http://cfg/config", "-url", "http://cfg/servers"],
                      fetcher=fetcher, interface_lookup=lambda ip: "eth0")
        out = capsys.readouterr().out.splitlines()
        assert status == 0
        assert out[0] == "IP: 203.0.113.7"
        assert out[1] == "Interface: eth0"
        assert out[-2].startswith("Server #1: id=1234")
        assert out[-1].endswith("latency=failed")
