"""
Typed records stored in the keychain and the label conventions that tie them
to raw store entries.

    <name>                    base credential
    <name> role <role>        role definition
    <name> mfa / <name> token             MFA session pair
    <name> role-key / <name> role-token   role session pair
"""

import re
from collections import namedtuple

from .exceptions import MalformedEntry
from .store import Entry

BASE_CREDENTIAL = "base"
ROLE_DEFINITION = "role"
MFA_SESSION = "mfa-session"
ROLE_SESSION = "role-session"
MFA_SESSION_TOKEN = "mfa-session-token"
ROLE_SESSION_TOKEN = "role-session-token"

TOKEN_ACCOUNT_SUFFIX = "_token"

_NAME_RE = re.compile(r"^\S+$")

BaseCredential = namedtuple(
    "BaseCredential", ["name", "access_key_id", "secret_access_key", "mfa_serial"]
)

RoleDefinition = namedtuple("RoleDefinition", ["name", "role_name", "role_arn", "session_name"])

Session = namedtuple(
    "Session",
    [
        "kind",
        "name",
        "access_key_id",
        "secret_access_key",
        "session_token",
        "annotation",
        "reference",
    ],
)


class SessionKind(namedtuple("SessionKind", ["record_type", "key_suffix", "token_suffix"])):
    """Label suffixes for the two halves of a cached session."""

    def key_label(self, name):
        return f"{name} {self.key_suffix}"

    def token_label(self, name):
        return f"{name} {self.token_suffix}"

    def labels(self, name):
        return self.key_label(name), self.token_label(name)


MFA = SessionKind(MFA_SESSION, "mfa", "token")
ROLE = SessionKind(ROLE_SESSION, "role-key", "role-token")


def is_valid_name(name):
    """Scope and role names must be non-empty and free of whitespace."""
    return bool(name) and _NAME_RE.match(name) is not None


def base_label(name):
    return name


def role_label(name, role_name):
    return f"{name} role {role_name}"


def classify(label):
    """
    Work out which record a raw label belongs to.

    Returns:
        tuple: (record_type, name, role_name or None)
    """
    parts = label.split(" ")
    if len(parts) >= 3 and parts[-2] == "role":
        return ROLE_DEFINITION, " ".join(parts[:-2]), parts[-1]
    if len(parts) >= 2:
        name, suffix = " ".join(parts[:-1]), parts[-1]
        if suffix == MFA.key_suffix:
            return MFA_SESSION, name, None
        if suffix == MFA.token_suffix:
            return MFA_SESSION_TOKEN, name, None
        if suffix == ROLE.key_suffix:
            return ROLE_SESSION, name, None
        if suffix == ROLE.token_suffix:
            return ROLE_SESSION_TOKEN, name, None
    return BASE_CREDENTIAL, label, None


def decode_base(entry):
    return BaseCredential(
        name=entry.label,
        access_key_id=entry.account,
        secret_access_key=entry.secret,
        mfa_serial=entry.annotation,
    )


def encode_base(credential):
    return Entry(
        label=base_label(credential.name),
        account=credential.access_key_id,
        secret=credential.secret_access_key,
        annotation=credential.mfa_serial or "",
    )


def decode_role(entry, name, role_name):
    return RoleDefinition(
        name=name,
        role_name=role_name,
        role_arn=entry.annotation,
        session_name=entry.account,
    )


def encode_role(definition):
    return Entry(
        label=role_label(definition.name, definition.role_name),
        account=definition.session_name,
        secret="",
        annotation=definition.role_arn,
    )


def decode_session(kind, name, key_entry, token_entry):
    """
    Combine the two halves of a cached session.

    Raises:
        MalformedEntry: If a half is missing or the halves belong to
            different issuances
    """
    if key_entry is None or token_entry is None:
        missing = kind.key_label(name) if key_entry is None else kind.token_label(name)
        raise MalformedEntry(f"Session half '{missing}' is missing")

    if token_entry.account != key_entry.account + TOKEN_ACCOUNT_SUFFIX:
        raise MalformedEntry(
            f"Session halves '{key_entry.label}' and '{token_entry.label}' do not match"
        )

    return Session(
        kind=kind,
        name=name,
        access_key_id=key_entry.account,
        secret_access_key=key_entry.secret,
        session_token=token_entry.secret,
        annotation=key_entry.annotation,
        reference=token_entry.annotation,
    )


def encode_session(session):
    """Split a session into its (key, token) entries."""
    kind = session.kind
    key_entry = Entry(
        label=kind.key_label(session.name),
        account=session.access_key_id,
        secret=session.secret_access_key,
        annotation=session.annotation,
    )
    token_entry = Entry(
        label=kind.token_label(session.name),
        account=session.access_key_id + TOKEN_ACCOUNT_SUFFIX,
        secret=session.session_token,
        annotation=session.reference,
    )
    return key_entry, token_entry


def session_from_credentials(kind, name, credentials, reference):
    """
    Build a session from an STS credentials dict.

    Args:
        kind: MFA or ROLE
        name: Scope name
        credentials: dict with AccessKeyId, SecretAccessKey, SessionToken, Expiration
        reference: Display annotation for the token half
    """
    return Session(
        kind=kind,
        name=name,
        access_key_id=credentials["AccessKeyId"],
        secret_access_key=credentials["SecretAccessKey"],
        session_token=credentials["SessionToken"],
        annotation=str(to_epoch_seconds(credentials["Expiration"])),
        reference=reference,
    )


def to_epoch_seconds(expiration):
    """Convert an STS expiration (datetime or number) to integer epoch seconds."""
    if hasattr(expiration, "timestamp"):
        return int(expiration.timestamp())
    return int(expiration)
