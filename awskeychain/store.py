"""
File backed secret store.

Every entry is one section of an INI file, keyed by its label:

    [acct1 mfa]
    account = ASIA...
    secret = __encrypted__:...
    annotation = 1760000000

Each operation re-reads the file and writes it back, so independent
invocations see each other's changes.
"""

import configparser
import os
from collections import namedtuple
from pathlib import Path

from .crypto import decrypt_secret, encrypt_secret
from .exceptions import StoreError

Entry = namedtuple("Entry", ["label", "account", "secret", "annotation"])

STORE_DEFAULTS_SECTION = " keychain-defaults"


def get_default_store_path():
    """Get the default keychain file path."""
    return os.path.expanduser("~/.aws/keychain")


def read_store_file(store_file):
    """
    Read the keychain file.

    Args:
        store_file: Path to the keychain file

    Returns:
        ConfigParser object, empty if the file does not exist
    """
    # Labels never contain a leading space, so "DEFAULT" is stored as a plain entry
    config = configparser.ConfigParser(interpolation=None, default_section=STORE_DEFAULTS_SECTION)
    # Preserve case sensitivity
    config.optionxform = str
    if os.path.exists(store_file):
        try:
            config.read(store_file)
        except configparser.Error as e:
            raise StoreError(f"Cannot parse keychain file {store_file}: {e}")
    return config


def write_store_file(store_file, config):
    """Write the keychain file with secure permissions."""
    Path(store_file).parent.mkdir(parents=True, exist_ok=True)

    # Create with 0600 directly so the file is never briefly world-readable
    fd = os.open(store_file, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    try:
        f = os.fdopen(fd, "w")
    except Exception:
        os.close(fd)
        raise
    with f:
        config.write(f)


class SecretStore:
    """Labeled (account, secret, annotation) entries kept in one file."""

    def __init__(self, path, ssh_key_path=None):
        self.path = path
        self.ssh_key_path = ssh_key_path

    def _load(self):
        return read_store_file(self.path)

    def _entry(self, config, label):
        section = config[label]
        return Entry(
            label=label,
            account=section.get("account", ""),
            secret=decrypt_secret(section.get("secret", ""), self.ssh_key_path),
            annotation=section.get("annotation", ""),
        )

    def find(self, label):
        """Return the entry stored under label, or None."""
        config = self._load()
        if not config.has_section(label):
            return None
        return self._entry(config, label)

    def list_all(self):
        """Return every entry, ordered by label."""
        config = self._load()
        return [self._entry(config, label) for label in sorted(config.sections())]

    def create(self, label, account, secret, annotation=""):
        """Store an entry, replacing any entry with the same label."""
        return self.create_many([Entry(label, account, secret, annotation)])[0]

    def create_many(self, entries):
        """Store several entries with a single write of the file."""
        config = self._load()
        for entry in entries:
            secret = entry.secret
            if self.ssh_key_path and secret:
                secret = encrypt_secret(secret, self.ssh_key_path)
            config[entry.label] = {
                "account": entry.account,
                "secret": secret,
                "annotation": entry.annotation,
            }
        write_store_file(self.path, config)
        return list(entries)

    def delete(self, entry):
        """Delete an entry (or label). Deleting an absent entry is a no-op."""
        return self.delete_many([entry])

    def delete_many(self, entries):
        """
        Delete several entries (or labels) with a single write of the file.

        Returns:
            int: number of entries that were actually removed
        """
        config = self._load()
        removed = 0
        for entry in entries:
            label = entry.label if isinstance(entry, Entry) else entry
            if config.remove_section(label):
                removed += 1
        if removed:
            write_store_file(self.path, config)
        return removed
