"""
Minimal CardDAV client: lists collections with PROPFIND and downloads vCard resources.
"""

# Standard Library
import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from urllib.parse import unquote, urljoin, urlsplit

# Third Party
import requests
from requests.adapters import HTTPAdapter
from requests.auth import HTTPBasicAuth

# CardDAV to Yealink
from carddav_to_yealink import __version__
from carddav_to_yealink.exceptions import DirectoryUnavailable, ResourceFetchFailed

logger = logging.getLogger(__name__)

VCARD_CONTENT_TYPE = "text/vcard"
DEFAULT_TIMEOUT = 30

PROPFIND_BODY = """<?xml version="1.0" encoding="utf-8"?>
<D:propfind xmlns:D="DAV:">
    <D:prop>
        <D:resourcetype/>
        <D:getcontenttype/>
    </D:prop>
</D:propfind>
"""


@dataclass(frozen=True)
class DirectoryEntry:
    """
    A resource found while walking the server, with its declared content type.
    """

    href: str
    content_type: str | None = None

    @property
    def is_vcard(self) -> bool:
        return bool(self.content_type) and self.content_type.strip().lower().startswith(
            VCARD_CONTENT_TYPE
        )


class CardDAVClient:
    """
    Minimal WebDAV client for CardDAV address books.
    """

    def __init__(  # pylint: disable=too-many-arguments, too-many-positional-arguments
        self,
        url: str,
        username: str,
        password: str,
        verify_ssl: bool = True,
        max_connections: int = 5,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        """
        Initializes the CardDAV client.

        :param url: Server base URL
        :type url: str
        :param username: Username
        :type username: str
        :param password: Password
        :type password: str
        :param verify_ssl: Whether to verify SSL certificates
        :type verify_ssl: bool
        :param max_connections: Size of the HTTP connection pool
        :type max_connections: int
        :param timeout: Timeout in seconds for every request
        :type timeout: float
        """

        self.base_url = url.rstrip("/") + "/"
        self.session = requests.Session()

        if username or password:
            self.session.auth = HTTPBasicAuth(username=username, password=password)

        self.session.headers.update({"User-Agent": self._get_user_agent()})
        self.verify = verify_ssl
        self.timeout = timeout

        # Card downloads share this session from several threads
        adapter = HTTPAdapter(pool_maxsize=max(1, max_connections))
        self.session.mount("https://", adapter)
        self.session.mount("http://", adapter)

    def __enter__(self) -> "CardDAVClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        """
        Closes the HTTP session and its pooled connections.
        """

        self.session.close()

    @staticmethod
    def _get_user_agent() -> str:
        """
        Returns a default User-Agent string for HTTP requests.

        :return: User-Agent string
        :rtype: str
        """

        return f"CardDAVToYealink/{__version__} via python-requests/{requests.__version__}"

    def _url(self, href: str) -> str:
        return urljoin(self.base_url, href)

    def _path(self, href: str) -> str:
        """
        Returns the decoded URL path of an href, without a trailing slash,
        so that relative and absolute forms of the same collection compare equal.
        """

        return unquote(urlsplit(self._url(href)).path).rstrip("/")

    def _propfind(self, href: str, depth: str = "1") -> str:
        """
        Sends a PROPFIND request and returns the multistatus body.

        :param href: Collection path or URL
        :type href: str
        :param depth: Depth header
        :type depth: str
        :return: Response body
        :rtype: str
        """

        headers = {
            "Content-Type": 'application/xml; charset="utf-8"',
            "Depth": depth,
        }
        resp = self.session.request(
            method="PROPFIND",
            url=self._url(href),
            data=PROPFIND_BODY.encode("utf-8"),
            headers=headers,
            verify=self.verify,
            timeout=self.timeout,
        )

        resp.raise_for_status()

        return resp.text

    def list_collection(self, href: str) -> list[DirectoryEntry]:
        """
        Lists a collection one level deep. The collection itself is usually
        part of the answer, callers filter it.

        :param href: Collection path or URL
        :type href: str
        :return: Entries reported by the server
        :rtype: list[DirectoryEntry]
        """

        try:
            root = ET.fromstring(self._propfind(href, depth="1"))
        except requests.RequestException as err:
            raise DirectoryUnavailable(f"Cannot list {href}: {err}") from err
        except ET.ParseError as err:
            raise DirectoryUnavailable(
                f"Invalid PROPFIND response for {href}: {err}"
            ) from err

        entries = []

        for response in root.findall(".//{DAV:}response"):
            href_node = response.find("{DAV:}href")

            if href_node is None or not (href_node.text or "").strip():
                continue

            content_type = response.find(".//{DAV:}getcontenttype")
            entries.append(
                DirectoryEntry(
                    href=href_node.text.strip(),
                    content_type=(
                        content_type.text.strip()
                        if content_type is not None and content_type.text
                        else None
                    ),
                )
            )

        return entries

    def discover(self, root_paths: list[str]) -> list[DirectoryEntry]:
        """
        Walks root -> address book -> card and returns all vCard resources.

        Only two levels below each root are visited.

        :param root_paths: Root collection paths
        :type root_paths: list[str]
        :return: vCard resources in discovery order
        :rtype: list[DirectoryEntry]
        """

        found: list[DirectoryEntry] = []

        for root_path in root_paths:
            root_key = self._path(root_path)

            for book in self.list_collection(root_path):
                if not book.href or self._path(book.href) == root_key:
                    continue

                book_key = self._path(book.href)
                cards = [
                    entry
                    for entry in self.list_collection(book.href)
                    if self._path(entry.href) != book_key and entry.is_vcard
                ]

                logger.debug("Found %d vCards in %s", len(cards), book.href)

                found.extend(cards)

        return found

    def get_resource(self, href: str) -> bytes:
        """
        Downloads the raw body of a resource.

        :param href: Resource path or URL
        :type href: str
        :return: Response body
        :rtype: bytes
        """

        try:
            resp = self.session.get(
                url=self._url(href), verify=self.verify, timeout=self.timeout
            )
            resp.raise_for_status()
        except requests.RequestException as err:
            raise ResourceFetchFailed(f"Cannot fetch {href}: {err}") from err

        return resp.content
