"""
Exceptions raised while building the Yealink phonebook.
"""


class CardDAVToYealinkError(Exception):
    """
    Base class for all errors raised by this package.
    """


class SettingsError(CardDAVToYealinkError):
    """
    The settings file is missing, unreadable or incomplete.
    """


class DirectoryUnavailable(CardDAVToYealinkError):
    """
    A root path or address book collection could not be listed.
    Aborts the whole run.
    """


class ResourceFetchFailed(CardDAVToYealinkError):
    """
    A single vCard resource could not be downloaded.
    Only that resource is skipped.
    """


class OutputWriteFailed(CardDAVToYealinkError):
    """
    The phonebook file could not be written.
    """
