"""
Settings for the CardDAV to Yealink converter, loaded from a JSON file.
"""

# Standard Library
import json
from dataclasses import dataclass
from pathlib import Path

# CardDAV to Yealink
from carddav_to_yealink.exceptions import SettingsError

DEFAULT_MAX_NUMBER_OF_CONNECTIONS = 5


@dataclass(frozen=True)
class Settings:  # pylint: disable=too-many-instance-attributes
    """
    Immutable run configuration.
    """

    output_file: str
    server: str
    username: str
    password: str
    webdav_endpoints: tuple[str, ...] = ()
    max_number_of_connections: int = DEFAULT_MAX_NUMBER_OF_CONNECTIONS
    split_contact_when_multiple_phone_numbers: bool = False
    ping_url_when_finished_successfully: str | None = None
    country_code: str | None = None
    verify_ssl: bool = True


def _optional_str(data: dict, key: str) -> str | None:
    value = data.get(key)

    if value is None:
        return None

    if not isinstance(value, str):
        raise SettingsError(f"'{key}' must be a string")

    return value.strip() or None


def load_settings(path: str) -> Settings:
    """
    Loads the converter settings from a JSON file.

    :param path: Path to the JSON file.
    :type path: str
    :return: Settings for this run
    :rtype: Settings
    """

    path = Path(path)

    if not path.exists():
        raise SettingsError(f"Settings file not found: {path}")

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as err:
        raise SettingsError(f"Cannot read settings file {path}: {err}") from err

    if not isinstance(data, dict):
        raise SettingsError(f"Settings file {path} must contain a JSON object")

    for key in ("OutputFile", "Server"):
        if not isinstance(data.get(key), str) or not data[key].strip():
            raise SettingsError(f"Missing '{key}' in {path}")

    # Servers without authentication take empty credentials
    for key in ("Username", "Password"):
        if not isinstance(data.get(key, ""), str):
            raise SettingsError(f"'{key}' must be a string")

    endpoints = data.get("WebDavEndpoints") or []

    if not isinstance(endpoints, list) or not all(
        isinstance(e, str) for e in endpoints
    ):
        raise SettingsError("'WebDavEndpoints' must be a list of strings")

    max_connections = data.get(
        "MaxNumberOfConnections", DEFAULT_MAX_NUMBER_OF_CONNECTIONS
    )

    # bool is a subclass of int, reject it explicitly
    if (
        isinstance(max_connections, bool)
        or not isinstance(max_connections, int)
        or max_connections < 1
    ):
        raise SettingsError("'MaxNumberOfConnections' must be an integer >= 1")

    split = data.get("SplitContactWhenMultiplePhoneNumbers", False)
    verify_ssl = data.get("VerifySsl", True)

    for key, value in (
        ("SplitContactWhenMultiplePhoneNumbers", split),
        ("VerifySsl", verify_ssl),
    ):
        if not isinstance(value, bool):
            raise SettingsError(f"'{key}' must be true or false")

    return Settings(
        output_file=data["OutputFile"],
        server=data["Server"],
        username=data.get("Username", ""),
        password=data.get("Password", ""),
        webdav_endpoints=tuple(endpoints),
        max_number_of_connections=max_connections,
        split_contact_when_multiple_phone_numbers=split,
        ping_url_when_finished_successfully=_optional_str(
            data, "PingUrlWhenFinishedSuccessfully"
        ),
        country_code=_optional_str(data, "CountryCode"),
        verify_ssl=verify_ssl,
    )
