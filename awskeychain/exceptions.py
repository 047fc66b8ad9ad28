"""
Error kinds raised by aws-keychain.

Library code raises these; only the command line layer prints them and picks
an exit status.
"""


class KeychainError(Exception):
    """Base class for all aws-keychain errors."""


class NotFound(KeychainError):
    """A required entry (base credential, role definition) does not exist."""


class MalformedEntry(KeychainError):
    """A session half exists without its matching partner."""


class RemoteRejected(KeychainError):
    """STS refused the request (bad MFA code, missing permission, ...)."""


class RemoteError(KeychainError):
    """STS could not be reached or failed for a reason other than access denied."""


class StoreError(KeychainError):
    """The secret store file could not be read, written or decrypted."""


class UsageError(KeychainError):
    """Missing or invalid command line arguments."""


class ConfigError(KeychainError):
    """The AWS config file could not be parsed."""
