"""Tests for text, CSV and listing output."""

from datetime import datetime, timedelta, timezone

from mini_speedtest.models import ClientLocation, Server, SpeedtestResult
from mini_speedtest.output import (
    CSV_HEADER,
    format_csv,
    format_header,
    format_listing,
    format_speed,
    format_text,
    format_timestamp,
)

TS = datetime(2021, 3, 4, 5, 6, 7, tzinfo=timezone.utc)


def result(download=12_000_000, upload=3_000_000):
    return SpeedtestResult(
        server_id="1234",
        server_host="speed.example.net:8080",
        sponsor="ACME",
        name="Metro",
        download_bps=download,
        upload_bps=upload,
        timestamp=TS,
    )


class TestTimestamp:

    def test_utc(self):
        assert format_timestamp(TS) == "2021-03-04T05:06:07.000000Z"

    def test_converted_to_utc(self):
        local = datetime(2021, 3, 4, 7, 6, 7, 250000, tzinfo=timezone(timedelta(hours=2)))
        assert format_timestamp(local) == "2021-03-04T05:06:07.000000Z"

    def test_microseconds_are_zeroed(self):
        assert format_timestamp(datetime(2021, 3, 4, 5, 6, 7, 999999, tzinfo=timezone.utc)) == (
            "2021-03-04T05:06:07.000000Z"
        )
        record = format_csv(result(), timestamp=datetime(2022, 1, 1, 0, 0, 1, 123456, tzinfo=timezone.utc))
        assert record.split(",")[3] == "2022-01-01T00:00:01.000000Z"


class TestCsv:

    def test_record(self):
        assert format_csv(result()) == '1234,"ACME","Metro",2021-03-04T05:06:07.000000Z,,,12000000,3000000,,'

    def test_field_count_matches_header(self):
        assert len(format_csv(result()).split(",")) == len(CSV_HEADER) == 10

    def test_custom_separator_is_unquoted(self):
        assert format_csv(result(), ";") == "1234;ACME;Metro;2021-03-04T05:06:07.000000Z;;;12000000;3000000;;"

    def test_unmeasured_direction_is_empty(self):
        fields = format_csv(result(upload=None)).split(",")
        assert fields[6] == "12000000"
        assert fields[7] == ""

    def test_explicit_timestamp(self):
        later = datetime(2022, 1, 1, tzinfo=timezone.utc)
        assert format_csv(result(), timestamp=later).split(",")[3] == "2022-01-01T00:00:00.000000Z"


class TestText:

    def test_header_and_speeds(self):
        assert format_text(result()) == [
            "Server ID: 1234",
            "Server: speed.example.net:8080",
            "Download speed: 12000000 bps",
            "Upload speed: 3000000 bps",
        ]

    def test_download_only(self):
        assert format_text(result(upload=None))[-1] == "Download speed: 12000000 bps"

    def test_pieces(self):
        assert format_header("9", "h:80") == ["Server ID: 9", "Server: h:80"]
        assert format_speed("upload", 0) == "Upload speed: 0 bps"


class TestListing:

    def test_listing(self):
        client = ClientLocation(ip="203.0.113.7", lat=53.33, lon=-6.25, isp="Example Telecom",
                                isprating="3.7", country="IE")
        near = Server(id="1234", host="near.example.net:8080", lat=53.35, lon=-6.26)
        far = Server(id="3456", host="far.example.net:8080", lat=58.0, lon=-6.26)
        lines = format_listing(client, "eth0", "1234", [(2.4, near, 0.0123), (515.9, far, None)])
        assert lines[:9] == [
            "IP: 203.0.113.7",
            "Interface: eth0",
            "ISP: Example Telecom",
            "ISP Rating: 3.7",
            "Latitude: 53.33",
            "Longitude: -6.25",
            "Country: IE",
            "Server ID: 1234",
            "Nearest Servers:",
        ]
        assert lines[9] == ("Server #1: id=1234, serv=near.example.net:8080, lat=53.35, lon=-6.26, "
                            "dist=2km, latency=0.01")
        assert lines[10].endswith("dist=515km, latency=failed")

    def test_unknown_interface(self):
        client = ClientLocation(ip="203.0.113.7", lat=0.0, lon=0.0)
        lines = format_listing(client, None, None, [])
        assert lines[1] == "Interface: "
        assert lines[7] == "Server ID: "
        assert lines[-1] == "Nearest Servers:"
