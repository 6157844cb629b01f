# Standard Library
import json
import logging
import xml.etree.ElementTree as ET
from unittest.mock import Mock

# Third Party
import pytest
import requests

# CardDAV to Yealink
from carddav_to_yealink import carddav_to_yealink
from carddav_to_yealink.carddav_to_yealink import main, ping, run
from carddav_to_yealink.exceptions import DirectoryUnavailable, OutputWriteFailed
from carddav_to_yealink.settings import Settings
from carddav_to_yealink.webdav import DirectoryEntry

MAX_MUELLER = (
    "BEGIN:VCARD\r\nVERSION:3.0\r\nFN:Max Müller\r\n"
    "TEL;TYPE=VOICE,WORK:0301234567\r\nEND:VCARD\r\n"
).encode("utf-8")


class FakeCardDAVClient:
    """
    Replaces CardDAVClient in the orchestrator: one root, one address book, one card.
    """

    instances: list["FakeCardDAVClient"] = []
    bodies: dict[str, bytes] = {}
    fail_discovery = False

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.discovered_roots = None
        self.closed = False
        FakeCardDAVClient.instances.append(self)

    def discover(self, root_paths):
        self.discovered_roots = root_paths

        if self.fail_discovery:
            raise DirectoryUnavailable("Cannot list /dav/: 401 Unauthorized")

        return [DirectoryEntry(href, "text/vcard") for href in self.bodies]

    def get_resource(self, href):
        return self.bodies[href]

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.closed = True


@pytest.fixture
def fake_client(monkeypatch):
    FakeCardDAVClient.instances = []
    FakeCardDAVClient.bodies = {"/dav/contacts/max.vcf": MAX_MUELLER}
    FakeCardDAVClient.fail_discovery = False
    monkeypatch.setattr(carddav_to_yealink, "CardDAVClient", FakeCardDAVClient)

    return FakeCardDAVClient


@pytest.fixture
def pings(monkeypatch):
    calls = []

    def fake_get(url, **kwargs):
        calls.append(url)
        resp = Mock()
        resp.raise_for_status = Mock()

        return resp

    monkeypatch.setattr(requests, "get", fake_get)

    return calls


def _settings(tmp_path, **kwargs) -> Settings:
    values = {
        "output_file": str(tmp_path / "phonebook.xml"),
        "server": "https://example.com",
        "username": "user",
        "password": "pass",
        "webdav_endpoints": ("/dav/",),
    }
    values.update(kwargs)

    return Settings(**values)


def test_run_writes_phonebook_with_default_settings(tmp_path, fake_client, pings):
    settings = _settings(tmp_path)

    xml_output = run(settings)

    root = ET.fromstring((tmp_path / "phonebook.xml").read_text(encoding="utf-8"))
    entries = root.findall("DirectoryEntry")
    assert len(entries) == 1
    assert entries[0].find("Name").text == "Max Müller"
    assert [t.text for t in entries[0].findall("Telephone")] == ["0301234567"]
    assert xml_output == (tmp_path / "phonebook.xml").read_text(encoding="utf-8")
    assert pings == []


def test_run_passes_settings_to_client(tmp_path, fake_client, pings):
    run(_settings(tmp_path, max_number_of_connections=3, verify_ssl=False))

    client = fake_client.instances[0]
    assert client.kwargs == {
        "url": "https://example.com",
        "username": "user",
        "password": "pass",
        "verify_ssl": False,
        "max_connections": 3,
    }
    assert client.discovered_roots == ["/dav/"]


def test_run_applies_country_code_and_split(tmp_path, fake_client, pings):
    fake_client.bodies = {
        "/dav/contacts/jane.vcf": (
            b"BEGIN:VCARD\nFN:Jane Doe\nTEL;TYPE=CELL,HOME:0151234567\n"
            b"TEL;TYPE=WORK:00441234\nEND:VCARD\n"
        )
    }

    xml_output = run(
        _settings(
            tmp_path, country_code="49", split_contact_when_multiple_phone_numbers=True
        )
    )

    root = ET.fromstring(xml_output)
    assert [
        (e.find("Name").text, e.find("Telephone").text)
        for e in root.findall("DirectoryEntry")
    ] == [
        ("Jane Doe (Mobil Privat)", "+49151234567"),
        ("Jane Doe (Geschäftl.)", "+441234"),
    ]


def test_run_pings_url_after_writing_output(tmp_path, fake_client, pings):
    run(_settings(tmp_path, ping_url_when_finished_successfully="https://ping.example.com/ok"))

    assert pings == ["https://ping.example.com/ok"]
    assert (tmp_path / "phonebook.xml").exists()


def test_run_aborts_before_writing_when_discovery_fails(tmp_path, fake_client, pings):
    fake_client.fail_discovery = True
    settings = _settings(
        tmp_path, ping_url_when_finished_successfully="https://ping.example.com/ok"
    )

    with pytest.raises(DirectoryUnavailable):
        run(settings)

    assert not (tmp_path / "phonebook.xml").exists()
    assert pings == []


def test_run_does_not_ping_when_output_cannot_be_written(tmp_path, fake_client, pings):
    settings = _settings(
        tmp_path,
        output_file=str(tmp_path / "missing" / "phonebook.xml"),
        ping_url_when_finished_successfully="https://ping.example.com/ok",
    )

    with pytest.raises(OutputWriteFailed):
        run(settings)

    assert pings == []


# ping()
def test_ping_returns_true_on_success(pings):
    assert ping("https://ping.example.com/ok") is True
    assert pings == ["https://ping.example.com/ok"]


def test_ping_swallows_request_errors(monkeypatch, caplog):
    def failing_get(url, **kwargs):
        raise requests.ConnectionError("unreachable")

    monkeypatch.setattr(requests, "get", failing_get)

    assert ping("https://ping.example.com/ok") is False
    assert "unreachable" in caplog.text


def test_run_succeeds_when_ping_fails(tmp_path, fake_client, monkeypatch):
    resp = Mock()
    resp.raise_for_status.side_effect = requests.HTTPError("503 Service Unavailable")
    monkeypatch.setattr(requests, "get", Mock(return_value=resp))

    run(_settings(tmp_path, ping_url_when_finished_successfully="https://ping.example.com/ok"))

    assert (tmp_path / "phonebook.xml").exists()


# main()
def _write_settings(tmp_path, **overrides) -> str:
    data = {
        "OutputFile": str(tmp_path / "phonebook.xml"),
        "Server": "https://example.com",
        "Username": "user",
        "Password": "pass",
        "WebDavEndpoints": ["/dav/"],
    }
    data.update(overrides)
    path = tmp_path / "settings.json"
    path.write_text(json.dumps(data), encoding="utf-8")

    return str(path)


def test_main_returns_zero_on_success(tmp_path, fake_client, pings):
    assert main([_write_settings(tmp_path)]) == 0
    assert (tmp_path / "phonebook.xml").exists()


def test_main_output_file_option_overrides_settings(tmp_path, fake_client, pings):
    other = tmp_path / "other.xml"

    assert main([_write_settings(tmp_path), "--output-file", str(other)]) == 0
    assert other.exists()
    assert not (tmp_path / "phonebook.xml").exists()


def test_main_returns_one_for_missing_settings_file(tmp_path, fake_client, pings):
    assert main([str(tmp_path / "nonexistent.json")]) == 1


def test_main_returns_one_when_discovery_fails(tmp_path, fake_client, pings, caplog):
    fake_client.fail_discovery = True

    assert main([_write_settings(tmp_path)]) == 1
    assert "401 Unauthorized" in caplog.text
    assert not (tmp_path / "phonebook.xml").exists()


def test_main_returns_zero_when_ping_fails(tmp_path, fake_client, monkeypatch):
    monkeypatch.setattr(
        requests, "get", Mock(side_effect=requests.ConnectionError("unreachable"))
    )
    config = _write_settings(
        tmp_path, PingUrlWhenFinishedSuccessfully="https://ping.example.com/ok"
    )

    assert main([config]) == 0


def test_run_closes_client_after_fetching(tmp_path, fake_client, pings):
    run(_settings(tmp_path))

    assert fake_client.instances[0].closed is True


def test_run_closes_client_when_discovery_fails(tmp_path, fake_client, pings):
    fake_client.fail_discovery = True

    with pytest.raises(DirectoryUnavailable):
        run(_settings(tmp_path))

    assert fake_client.instances[0].closed is True


def test_main_returns_one_when_output_cannot_be_written(
    tmp_path, fake_client, pings, caplog
):
    config = _write_settings(
        tmp_path,
        OutputFile=str(tmp_path / "missing" / "phonebook.xml"),
        PingUrlWhenFinishedSuccessfully="https://ping.example.com/ok",
    )

    assert main([config]) == 1
    assert "Cannot write" in caplog.text
    assert pings == []


def test_main_verbose_option_enables_debug_logging(
    tmp_path, fake_client, pings, monkeypatch
):
    basic_config = Mock()
    monkeypatch.setattr(logging, "basicConfig", basic_config)

    assert main([_write_settings(tmp_path), "--verbose"]) == 0

    assert basic_config.call_args.kwargs["level"] == logging.DEBUG


def test_main_logs_at_info_level_by_default(tmp_path, fake_client, pings, monkeypatch):
    basic_config = Mock()
    monkeypatch.setattr(logging, "basicConfig", basic_config)

    assert main([_write_settings(tmp_path)]) == 0

    assert basic_config.call_args.kwargs["level"] == logging.INFO
