"""
CardDAV to Yealink phonebook converter

This script connects to a CardDAV server via WebDAV, walks the configured address book
collections, downloads all vCards and converts them into a Yealink remote phonebook XML file.

Requirements:
- requests

"""

# Standard Library
import argparse
import logging
from dataclasses import replace

# Third Party
import requests

# CardDAV to Yealink
from carddav_to_yealink import __version__
from carddav_to_yealink.contacts import fetch_all
from carddav_to_yealink.exceptions import CardDAVToYealinkError
from carddav_to_yealink.phonebook import create_yealink_phonebook_xml
from carddav_to_yealink.settings import Settings, load_settings
from carddav_to_yealink.webdav import CardDAVClient

logger = logging.getLogger(__name__)


def ping(url: str, timeout: float = 30) -> bool:
    """
    Calls the "finished" URL. Failures are logged, never raised.

    :param url: URL to call
    :type url: str
    :param timeout: Timeout in seconds
    :type timeout: float
    :return: Whether the call succeeded
    :rtype: bool
    """

    try:
        resp = requests.get(url, timeout=timeout)
        resp.raise_for_status()
    except requests.RequestException as err:
        logger.warning("Ping to %s failed: %s", url, err)

        return False

    logger.info("Pinged %s", url)

    return True


def run(settings: Settings) -> str:
    """
    Walks the address books, fetches all contacts, and writes the phonebook.

    :param settings: Settings for this run
    :type settings: Settings
    :return: Phonebook XML
    :rtype: str
    """

    with CardDAVClient(
        url=settings.server,
        username=settings.username,
        password=settings.password,
        verify_ssl=settings.verify_ssl,
        max_connections=settings.max_number_of_connections,
    ) as client:
        entries = client.discover(list(settings.webdav_endpoints))

        logger.info("Found %d vCard resources.", len(entries))

        contacts = fetch_all(client, entries, settings.max_number_of_connections)

    logger.info("Fetched %d contacts.", len(contacts))

    yealink_xml = create_yealink_phonebook_xml(
        contacts,
        split=settings.split_contact_when_multiple_phone_numbers,
        country_code=settings.country_code,
        write_path=settings.output_file,
    )

    logger.info("Phonebook written to %s", settings.output_file)

    if settings.ping_url_when_finished_successfully:
        ping(settings.ping_url_when_finished_successfully)

    return yealink_xml


def main(argv: list[str] | None = None) -> int:
    """
    Command line entry point.

    :param argv: Command line arguments
    :type argv: list[str] | None
    :return: Exit code
    :rtype: int
    """

    parser = argparse.ArgumentParser(
        prog="carddav-to-yealink",
        description="Convert CardDAV address books into a Yealink phonebook XML file.",
    )
    parser.add_argument(
        "config",
        nargs="?",
        default="settings.json",
        help="Path to the JSON settings file (default: settings.json)",
    )
    parser.add_argument(
        "-o", "--output-file", help="Overrides OutputFile from the settings file"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )

    try:
        settings = load_settings(args.config)

        if args.output_file:
            settings = replace(settings, output_file=args.output_file)

        run(settings)
    except CardDAVToYealinkError as err:
        logger.error("%s", err)

        return 1

    return 0
