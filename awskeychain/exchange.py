"""
Exchange base credentials for temporary ones and cache the result.

Both exchanges tear down the cached sessions for the scope first, then make
one STS call, then persist the new session. A rejected call therefore leaves
the scope with no cached session at all.
"""

import enum

from . import sts
from .entries import MFA, ROLE, session_from_credentials, role_label
from .exceptions import NotFound


class RoleChoiceKind(enum.Enum):
    NAMED = "named"
    NONE = "none"
    ABSENT = "absent"


class RoleChoice:
    """The role argument of assume-role: a role name, "none", or omitted."""

    NONE_SENTINEL = "none"

    def __init__(self, kind, role_name=None):
        if (kind is RoleChoiceKind.NAMED) != bool(role_name):
            raise ValueError("a role name is required exactly when the choice is NAMED")
        self.kind = kind
        self.role_name = role_name

    @classmethod
    def parse(cls, value):
        if value is None:
            return cls(RoleChoiceKind.ABSENT)
        if value == cls.NONE_SENTINEL:
            return cls(RoleChoiceKind.NONE)
        return cls(RoleChoiceKind.NAMED, value)

    @classmethod
    def named(cls, role_name):
        return cls(RoleChoiceKind.NAMED, role_name)

    def __eq__(self, other):
        if not isinstance(other, RoleChoice):
            return NotImplemented
        return (self.kind, self.role_name) == (other.kind, other.role_name)

    def __repr__(self):
        if self.kind is RoleChoiceKind.NAMED:
            return f"RoleChoice.named({self.role_name!r})"
        return f"RoleChoice({self.kind})"


class TokenExchange:
    """MFA session issuance and role assumption for one keychain."""

    def __init__(self, keychain, config, client_factory=None):
        self.keychain = keychain
        self.config = config
        self.client_factory = client_factory or sts.create_sts_client

    def _client(self, credential):
        return self.client_factory(
            credential.access_key_id, credential.secret_access_key, self.config.region
        )

    def _require_base(self, name):
        credential = self.keychain.find_base(name)
        if credential is None:
            raise NotFound(f"No credentials named '{name}' in the keychain")
        return credential

    def assume_role(self, name, choice, mfa_code=None):
        """
        Assume a role defined for name, replacing any cached session.

        Args:
            name: Scope name
            choice: RoleChoice (a plain string or None is parsed)
            mfa_code: Optional MFA code

        Returns:
            Session, or None when the choice is "none" or absent

        Raises:
            NotFound: Missing base credential or role definition
            RemoteRejected: STS denied the request
        """
        if not isinstance(choice, RoleChoice):
            choice = RoleChoice.parse(choice)

        credential = self._require_base(name)
        self.keychain.delete_session(ROLE, name)
        self.keychain.delete_session(MFA, name)

        if choice.kind is RoleChoiceKind.NONE or choice.kind is RoleChoiceKind.ABSENT:
            return None

        definition = self.keychain.find_role(name, choice.role_name)
        if definition is None:
            raise NotFound(f"No role '{choice.role_name}' defined for '{name}'")

        credentials = sts.assume_role(
            self._client(credential),
            role_arn=definition.role_arn,
            role_session_name=definition.session_name,
            serial_number=credential.mfa_serial or None,
            token_code=mfa_code or None,
            duration_seconds=sts.ROLE_SESSION_DURATION,
        )
        session = session_from_credentials(
            ROLE, name, credentials, reference=role_label(name, choice.role_name)
        )
        return self.keychain.create_session(session)

    def issue_mfa_session(self, name, mfa_code):
        """
        Get a 12 hour MFA session for name, replacing any cached session.

        Raises:
            NotFound: Missing base credential or MFA device
            RemoteRejected: STS denied the request
        """
        self.keychain.delete_session(ROLE, name)
        self.keychain.delete_session(MFA, name)

        credential = self._require_base(name)
        if not credential.mfa_serial:
            raise NotFound(f"No MFA device registered for '{name}'")

        credentials = sts.get_session_token(
            self._client(credential),
            serial_number=credential.mfa_serial,
            token_code=mfa_code,
            duration_seconds=sts.MFA_SESSION_DURATION,
        )
        session = session_from_credentials(MFA, name, credentials, reference=MFA.key_label(name))
        return self.keychain.create_session(session)
