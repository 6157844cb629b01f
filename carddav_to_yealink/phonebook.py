"""
Yealink remote phonebook rendering.
"""

# Standard Library
import logging
from pathlib import Path
from xml.sax.saxutils import escape

# CardDAV to Yealink
from carddav_to_yealink.contacts import Contact, PhoneNumber
from carddav_to_yealink.exceptions import OutputWriteFailed

logger = logging.getLogger(__name__)

ROOT_TAG = "YealinkIPPhoneDirectory"
ENTRY_TAG = "DirectoryEntry"

# Quotes are escaped too, so the text is safe in attributes as well
_ENTITIES = {'"': "&quot;", "'": "&apos;"}

# Characters XML 1.0 does not allow, even as character references
_INVALID_XML_CHARS = dict.fromkeys(
    [*range(0x00, 0x09), 0x0B, 0x0C, *range(0x0E, 0x20), 0xFFFE, 0xFFFF]
)


def _xml_text(value: str) -> str:
    return escape(value.translate(_INVALID_XML_CHARS), _ENTITIES)


def normalize_number(number: str, country_code: str | None = None) -> str:
    """
    Rewrites a number to international format.

    "00..." becomes "+...", and a national number "0[1-9][0-9]*" becomes
    "+<country_code>[1-9][0-9]*". Anything else is returned unchanged, as is
    every number when no country code is configured.

    :param number: Phone number as found in the card
    :type number: str
    :param country_code: Country code without prefix, e.g. "49"
    :type country_code: str | None
    :return: Normalized number
    :rtype: str
    """

    if not country_code:
        return number

    if number.startswith("00"):
        return "+" + number[2:]

    if (
        len(number) >= 2
        and number[0] == "0"
        and number[1] in "123456789"
        and all(ch in "0123456789" for ch in number[2:])
    ):
        return f"+{country_code}{number[1:]}"

    return number


def _sort_key(contact: Contact) -> tuple:
    # Ties on the name are broken by the numbers, so equal data renders equally
    return (
        contact.name.lower(),
        contact.name,
        tuple((phone.number, phone.label) for phone in contact.phones),
    )


def _entries(
    contacts: list[Contact], split: bool
) -> list[tuple[str, list[PhoneNumber]]]:
    """
    Groups contacts into (name, numbers) phonebook entries.
    """

    entries = []

    for contact in contacts:
        if not split:
            entries.append((contact.name, list(contact.phones)))

            continue

        for phone in contact.phones:
            name = contact.name

            if len(contact.phones) > 1 and phone.label:
                name = f"{contact.name} ({phone.label})"

            entries.append((name, [phone]))

    return entries


def create_yealink_phonebook_xml(
    contacts: list[Contact],
    split: bool = False,
    country_code: str | None = None,
    write_path: str | None = None,
) -> str:
    """
    Creates the Yealink phonebook XML for the given contacts.

    Contacts are sorted by name (case-insensitive), then by their numbers, so
    the file only changes when the address books do. Characters that XML 1.0
    forbids are dropped from names and numbers.

    :param contacts: Contacts to render
    :type contacts: list[Contact]
    :param split: One entry per phone number instead of one per contact
    :type split: bool
    :param country_code: Country code used to normalize numbers
    :type country_code: str | None
    :param write_path: Optional path to write the XML file
    :type write_path: str | None
    :return: Phonebook XML
    :rtype: str
    """

    lines = [f"<{ROOT_TAG}>"]

    for name, phones in _entries(sorted(contacts, key=_sort_key), split):
        logger.debug("Processing entry: %s with %d numbers.", name, len(phones))

        lines.append(f"  <{ENTRY_TAG}>")
        lines.append(f"    <Name>{_xml_text(name)}</Name>")

        for phone in phones:
            number = normalize_number(phone.number, country_code)
            lines.append(f"    <Telephone>{_xml_text(number)}</Telephone>")

        lines.append(f"  </{ENTRY_TAG}>")

    lines.append(f"</{ROOT_TAG}>")

    xml_str = '<?xml version="1.0" encoding="UTF-8"?>\n' + "\n".join(lines) + "\n"

    if write_path:
        try:
            Path(write_path).write_text(xml_str, encoding="utf-8")
        except OSError as err:
            raise OutputWriteFailed(f"Cannot write {write_path}: {err}") from err

    return xml_str
