"""
Typed access to the secret store.

Callers work with BaseCredential, RoleDefinition and Session values; label
conventions and the two-entry layout of a session stay in this module and in
entries.py.
"""

from .entries import (
    classify,
    base_label,
    decode_base,
    decode_role,
    decode_session,
    encode_base,
    encode_role,
    encode_session,
    role_label,
)
from .exceptions import MalformedEntry
from .store import SecretStore


class Keychain:
    """Credential records for all scopes, backed by a SecretStore."""

    def __init__(self, store):
        self.store = store

    @classmethod
    def from_config(cls, config):
        return cls(SecretStore(config.store_path, ssh_key_path=config.ssh_key_path))

    # Base credentials

    def find_base(self, name):
        entry = self.store.find(base_label(name))
        if entry is None:
            return None
        return decode_base(entry)

    def add_base(self, credential):
        self.store.create_many([encode_base(credential)])
        return credential

    def delete_base(self, name):
        return self.store.delete(base_label(name)) > 0

    # Role definitions

    def find_role(self, name, role_name):
        entry = self.store.find(role_label(name, role_name))
        if entry is None:
            return None
        return decode_role(entry, name, role_name)

    def add_role(self, definition):
        self.store.create_many([encode_role(definition)])
        return definition

    # Sessions

    def find_session(self, kind, name):
        """
        Return the cached session of the given kind, or None.

        A session with a missing or mismatched half is reported as absent.
        """
        key_label, token_label = kind.labels(name)
        key_entry = self.store.find(key_label)
        token_entry = self.store.find(token_label)
        if key_entry is None and token_entry is None:
            return None
        try:
            return decode_session(kind, name, key_entry, token_entry)
        except MalformedEntry:
            return None

    def create_session(self, session):
        """Persist both halves of a session in one write."""
        self.store.create_many(list(encode_session(session)))
        return session

    def delete_session(self, kind, name):
        """
        Delete both halves of a session, whichever of them exist.

        Returns:
            bool: True if anything was removed
        """
        return self.store.delete_many(list(kind.labels(name))) > 0

    # Listing

    def entries(self):
        """
        Every raw entry with its classification.

        Returns:
            list of (entry, record_type, name, role_name)
        """
        return [(entry,) + classify(entry.label) for entry in self.store.list_all()]
