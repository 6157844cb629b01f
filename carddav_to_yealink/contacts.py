"""
Turns vCard resources into phonebook contacts and downloads them concurrently.
"""

# Standard Library
import enum
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass

# CardDAV to Yealink
from carddav_to_yealink.exceptions import ResourceFetchFailed
from carddav_to_yealink.vcard import VCardRecord, parse_vcards
from carddav_to_yealink.webdav import CardDAVClient, DirectoryEntry

logger = logging.getLogger(__name__)


class PhoneKind(enum.Enum):
    VOICE = "voice"
    CELL = "cell"
    OTHER = "other"

    @classmethod
    def from_types(cls, types: list[str]) -> "PhoneKind":
        types = {t.lower() for t in types}

        if types & {"cell", "mobile"}:
            return cls.CELL

        if "voice" in types:
            return cls.VOICE

        return cls.OTHER


class PhoneContext(enum.Enum):
    HOME = "home"
    WORK = "work"
    OTHER = "other"

    @classmethod
    def from_types(cls, types: list[str]) -> "PhoneContext":
        # First matching type wins when a number is tagged both HOME and WORK
        for t in types:
            if t.lower() == "home":
                return cls.HOME

            if t.lower() == "work":
                return cls.WORK

        return cls.OTHER


KIND_TOKENS = {
    PhoneKind.VOICE: "",
    PhoneKind.CELL: "Mobil",
    PhoneKind.OTHER: "",
}

CONTEXT_TOKENS = {
    PhoneContext.HOME: "Privat",
    PhoneContext.WORK: "Geschäftl.",
    PhoneContext.OTHER: "",
}


def phone_label(kind: PhoneKind, context: PhoneContext) -> str:
    """
    Returns the label shown next to a number, e.g. "Mobil Privat".

    :param kind: Phone kind
    :type kind: PhoneKind
    :param context: Phone context
    :type context: PhoneContext
    :return: Label, possibly empty
    :rtype: str
    """

    return " ".join(
        token for token in (KIND_TOKENS[kind], CONTEXT_TOKENS[context]) if token
    )


@dataclass(frozen=True)
class PhoneNumber:
    number: str
    label: str = ""


@dataclass(frozen=True)
class Contact:
    name: str
    phones: tuple[PhoneNumber, ...]


def contact_from_record(record: VCardRecord) -> Contact | None:
    """
    Builds a contact from a decoded card, or returns None when the card
    has no display name or no telephone number.

    :param record: Decoded card
    :type record: VCardRecord
    :return: Contact or None
    :rtype: Contact | None
    """

    if not (record.display_names and record.phones):
        return None

    return Contact(
        name=record.display_names[0],
        phones=tuple(
            PhoneNumber(
                number=number,
                label=phone_label(
                    PhoneKind.from_types(types), PhoneContext.from_types(types)
                ),
            )
            for number, types in record.phones
        ),
    )


def fetch_contacts(client: CardDAVClient, entry: DirectoryEntry) -> list[Contact]:
    """
    Downloads one vCard resource and returns its usable contacts.

    :param client: CardDAV client
    :type client: CardDAVClient
    :param entry: vCard resource
    :type entry: DirectoryEntry
    :return: Contacts in card order
    :rtype: list[Contact]
    """

    body = client.get_resource(entry.href)
    contacts = []

    for record in parse_vcards(body):
        contact = contact_from_record(record)

        if contact is None:
            logger.debug("Skipping card without name or phone in %s", entry.href)

            continue

        contacts.append(contact)

    return contacts


def fetch_all(
    client: CardDAVClient, entries: list[DirectoryEntry], max_concurrency: int
) -> list[Contact]:
    """
    Fetches all vCard resources with at most ``max_concurrency`` downloads in flight.

    Resources that fail to download are logged and skipped. The order of the
    returned contacts depends on completion order and carries no meaning.

    :param client: CardDAV client
    :type client: CardDAVClient
    :param entries: vCard resources
    :type entries: list[DirectoryEntry]
    :param max_concurrency: Number of worker threads, at least 1
    :type max_concurrency: int
    :return: All contacts, duplicates included
    :rtype: list[Contact]
    """

    if max_concurrency < 1:
        raise ValueError("max_concurrency must be at least 1")

    contacts: list[Contact] = []
    failed = 0

    with ThreadPoolExecutor(max_workers=max_concurrency) as executor:
        futures = {
            executor.submit(fetch_contacts, client, entry): entry for entry in entries
        }

        # Results are only collected here, in the calling thread
        for future in as_completed(futures):
            try:
                contacts.extend(future.result())
            except ResourceFetchFailed as err:
                failed += 1
                logger.warning("Skipping %s: %s", futures[future].href, err)

    if failed:
        logger.warning(
            "%d of %d vCard resources could not be fetched", failed, len(entries)
        )

    return contacts
