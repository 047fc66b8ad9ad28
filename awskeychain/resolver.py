"""
Pick the credential set that is active for a name right now.

Precedence: cached role session, then cached MFA session, then the base
credential. Expired sessions met on the way are deleted.
"""

import time
from collections import namedtuple

from .entries import BASE_CREDENTIAL, MFA, ROLE
from .exceptions import NotFound
from .expiry import expiry_timestamp, is_expired

ActiveCredential = namedtuple(
    "ActiveCredential",
    [
        "name",
        "source",
        "access_key_id",
        "secret_access_key",
        "session_token",
        "expiration",
        "record",
    ],
)


def _from_session(session):
    return ActiveCredential(
        name=session.name,
        source=session.kind.record_type,
        access_key_id=session.access_key_id,
        secret_access_key=session.secret_access_key,
        session_token=session.session_token,
        expiration=expiry_timestamp(session),
        record=session,
    )


def _from_base(credential):
    return ActiveCredential(
        name=credential.name,
        source=BASE_CREDENTIAL,
        access_key_id=credential.access_key_id,
        secret_access_key=credential.secret_access_key,
        session_token=None,
        expiration=None,
        record=credential,
    )


class Resolver:
    """Resolve names to active credentials, purging expired sessions."""

    def __init__(self, keychain, clock=time.time):
        self.keychain = keychain
        self.clock = clock

    def _live_session(self, kind, name, now):
        session = self.keychain.find_session(kind, name)
        if session is None:
            return None
        if is_expired(session, now):
            self.keychain.delete_session(kind, name)
            return None
        return session

    def resolve(self, name):
        """
        Return the active credential for name.

        Raises:
            NotFound: No usable session and no base credential
        """
        now = self.clock()
        for kind in (ROLE, MFA):
            session = self._live_session(kind, name, now)
            if session is not None:
                return _from_session(session)

        credential = self.keychain.find_base(name)
        if credential is None:
            raise NotFound(f"No credentials named '{name}' in the keychain")
        return _from_base(credential)
