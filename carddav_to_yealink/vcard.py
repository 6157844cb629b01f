"""
vCard decoding, reduced to what a phonebook needs: display names and telephone numbers.

Supports vCard 3.0 and 4.0 bodies holding one or more cards, folded lines
(RFC 6350, section 3.2), property groups (``item1.TEL``), ``TYPE=`` lists and
flag-style type parameters. vCard 2.1 quoted-printable values, including soft
line breaks, are decoded using their ``CHARSET``.
"""

# Standard Library
import quopri
from dataclasses import dataclass, field


@dataclass
class VCardRecord:
    """
    One decoded card.
    """

    display_names: list[str] = field(default_factory=list)
    phones: list[tuple[str, list[str]]] = field(default_factory=list)


def _params(key: str) -> list[str]:
    return [p.strip() for p in key.split(";")[1:] if p.strip()]


def _is_quoted_printable(key: str) -> bool:
    for p in _params(key):
        name, _, value = p.rpartition("=")

        if value.strip().upper() == "QUOTED-PRINTABLE" and name.strip().upper() in (
            "",
            "ENCODING",
        ):
            return True

    return False


def _decode_value(key: str, value: str) -> str:
    """
    Decodes a quoted-printable value, other values are returned as they are.
    """

    if not _is_quoted_printable(key):
        return value

    charset = "utf-8"

    for p in _params(key):
        name, _, param_value = p.partition("=")

        if name.strip().upper() == "CHARSET" and param_value.strip():
            charset = param_value.strip().strip('"')

    raw = quopri.decodestring(value.encode("utf-8"))

    try:
        return raw.decode(charset, errors="replace")
    except LookupError:
        return raw.decode("utf-8", errors="replace")


def _unfold_lines(lines: list[str]) -> list[str]:
    """
    Unfolds folded lines according to RFC 6350.
    A quoted-printable line ending in "=" continues on the next line.

    :param lines: Raw vCard lines
    :type lines: list[str]
    :return: Logical vCard lines
    :rtype: list[str]
    """

    unfolded: list[str] = []

    for line in lines:
        if not line:
            continue

        if (
            unfolded
            and unfolded[-1].endswith("=")
            and ":" in unfolded[-1]
            and _is_quoted_printable(unfolded[-1].split(":", 1)[0])
        ):
            unfolded[-1] = unfolded[-1][:-1] + line.lstrip(" \t")
        elif line[0] in (" ", "\t") and unfolded:
            unfolded[-1] += line[1:]
        else:
            unfolded.append(line)

    return unfolded


def _extract_tel_types(key: str) -> list[str]:
    """
    Extracts telephone types from a TEL property key (the part before the ':').

    It supports:
        - TYPE=comma,separated values, quoted or not
        - flag-style parameters (e.g. TEL;HOME:...)

    :param key: TEL property key
    :type key: str
    :return: Lower-cased telephone types
    :rtype: list[str]
    """

    tokens = key.split(";")
    types: list[str] = []

    for p in tokens[1:]:
        p = p.strip()

        if not p:
            continue

        if "=" in p:
            param_name, param_value = p.split("=", 1)

            if param_name.strip().upper() == "TYPE":
                for t in param_value.strip('"').split(","):
                    t_clean = t.strip().strip('"').lower()

                    if t_clean:
                        types.append(t_clean)
        else:
            types.append(p.lower())

    return types


def _unescape(value: str) -> str:
    out = []
    chars = iter(value)

    for ch in chars:
        if ch == "\\":
            nxt = next(chars, "")
            out.append(" " if nxt in ("n", "N") else nxt)
        else:
            out.append(ch)

    return "".join(out)


def _property_name(key: str) -> str:
    # Drop parameters and an optional group prefix ("item1.TEL;TYPE=CELL")
    return key.split(";", 1)[0].rsplit(".", 1)[-1].upper().strip()


def parse_vcards(data: bytes | str) -> list[VCardRecord]:
    """
    Decodes a vCard body into one record per BEGIN:VCARD/END:VCARD block.

    Lines outside of a block and lines without a ':' are ignored.

    :param data: Raw resource body
    :type data: bytes | str
    :return: Decoded cards in body order
    :rtype: list[VCardRecord]
    """

    if isinstance(data, bytes):
        data = data.decode("utf-8-sig", errors="replace")

    lines = data.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    records: list[VCardRecord] = []
    current: VCardRecord | None = None

    for line in _unfold_lines(lines):
        if ":" not in line:
            continue

        key, value = line.split(":", 1)
        prop = _property_name(key)
        value = _decode_value(key, value)

        if prop == "BEGIN" and value.strip().upper() == "VCARD":
            current = VCardRecord()

            continue

        if prop == "END" and value.strip().upper() == "VCARD":
            if current is not None:
                records.append(current)

            current = None

            continue

        if current is None:
            continue

        if prop == "FN":
            name = _unescape(value).strip()

            if name:
                current.display_names.append(name)

            continue

        if prop == "TEL":
            number = value.strip()

            if number.lower().startswith("tel:"):
                number = number[4:].split(";", 1)[0].strip()

            if number:
                current.phones.append((number, _extract_tel_types(key)))

    return records
