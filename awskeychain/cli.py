"""
Command-line interface for aws-keychain.
"""

import argparse
import getpass
import os
import shlex
import subprocess
import sys
import time
from datetime import datetime, timezone

from . import __version__
from .config import Config
from .entries import (
    BASE_CREDENTIAL,
    MFA,
    MFA_SESSION,
    ROLE,
    ROLE_DEFINITION,
    ROLE_SESSION,
    BaseCredential,
    RoleDefinition,
    is_valid_name,
)
from .exceptions import (
    KeychainError,
    NotFound,
    RemoteError,
    RemoteRejected,
    StoreError,
    UsageError,
)
from .exchange import RoleChoice, TokenExchange
from .expiry import format_expiry, is_expired
from .keychain import Keychain
from .resolver import Resolver

RECORD_DESCRIPTIONS = {
    BASE_CREDENTIAL: "base credential",
    ROLE_DEFINITION: "role definition",
    MFA_SESSION: "mfa session",
    ROLE_SESSION: "role session",
}


class KeychainArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that reports usage errors as UsageError instead of exiting."""

    def error(self, message):
        raise UsageError(f"{message}\n{self.format_usage().rstrip()}")


def build_parser():
    parser = KeychainArgumentParser(
        prog="aws-keychain",
        description="Keep AWS credentials in a local keychain and cache MFA and role sessions",
        epilog="Examples:\n"
        "  aws-keychain add acct1 AKIA... --mfa-arn arn:aws:iam::123456789012:mfa/me\n"
        "  aws-keychain mfa acct1 123456              # 12-hour MFA session\n"
        "  aws-keychain assume-role acct1 deploy      # 1-hour role session\n"
        "  aws-keychain assume-role acct1 none        # Drop cached sessions\n"
        "  eval $(aws-keychain env acct1)             # Export active credentials",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--store",
        metavar="PATH",
        default=None,
        help="Keychain file (default: ~/.aws/keychain, overridden by AWS_KEYCHAIN_FILE, "
        "then by this argument)",
    )

    commands = parser.add_subparsers(dest="command", metavar="COMMAND")

    commands.add_parser("ls", help="List all keychain entries")

    add = commands.add_parser(
        "add",
        help="Add a base credential. The secret is read from AWS_SECRET_ACCESS_KEY or prompted for",
    )
    add.add_argument("name")
    add.add_argument("access_key_id")
    add.add_argument("--mfa-arn", default="", help="ARN of the MFA device for this credential")

    add_role = commands.add_parser("add-role", help="Define a role that can be assumed from NAME")
    add_role.add_argument("name")
    add_role.add_argument("role_name")
    add_role.add_argument("role_arn")
    add_role.add_argument(
        "--session-name", default=None, help="Role session name (default: current OS user)"
    )

    for verb, text in (
        ("cat", "Print the active credentials for NAME"),
        ("env", "Print shell export statements for the active credentials (for eval)"),
        ("shell", "Start $SHELL with the active credentials in its environment"),
        ("rm", "Remove the active credentials for NAME (session first, then base)"),
    ):
        command = commands.add_parser(verb, help=text)
        command.add_argument("name")

    assume = commands.add_parser(
        "assume-role", help="Assume a role and cache the 1-hour session ('none' logs out)"
    )
    assume.add_argument("name")
    assume.add_argument("role_name", nargs="?", default=None, metavar="ROLE_NAME|none")
    assume.add_argument("mfa_code", nargs="?", default=None)

    mfa = commands.add_parser("mfa", help="Get a 12-hour MFA session and cache it")
    mfa.add_argument("name")
    mfa.add_argument("mfa_code")

    return parser


def _format_timestamp(epoch):
    return datetime.fromtimestamp(epoch, timezone.utc).isoformat()


def _check_name(value, what):
    if not is_valid_name(value):
        raise UsageError(f"Invalid {what} '{value}': must be non-empty and contain no whitespace")


def credential_environment(active):
    """Environment variables for an active credential (None means unset)."""
    return {
        "AWS_ACCESS_KEY_ID": active.access_key_id,
        "AWS_SECRET_ACCESS_KEY": active.secret_access_key,
        "AWS_SESSION_TOKEN": active.session_token,
    }


def cmd_ls(keychain, clock):
    now = clock()
    entries = keychain.entries()
    if not entries:
        print("ℹ The keychain is empty", file=sys.stderr)
        return 0

    for entry, record_type, name, role_name in entries:
        if record_type not in RECORD_DESCRIPTIONS:
            # Token halves are listed with their key half
            continue
        line = f"{entry.label:<32} {RECORD_DESCRIPTIONS[record_type]:<16}"
        if record_type == ROLE_DEFINITION:
            line += f" {entry.annotation}"
        elif record_type == BASE_CREDENTIAL:
            line += f" {entry.account}"
            if entry.annotation:
                line += f" (mfa: {entry.annotation})"
        else:
            expires = format_expiry(entry)
            if expires is None:
                line += " expires: never"
            elif is_expired(entry, now):
                line += f" expired: {expires}"
            else:
                line += f" expires: {expires}"
        print(line.rstrip())
    return 0


def cmd_add(keychain, args, environ):
    _check_name(args.name, "name")
    secret = environ.get("AWS_SECRET_ACCESS_KEY") or getpass.getpass(
        f"Secret access key for '{args.name}': "
    )
    if not secret:
        raise UsageError("A secret access key is required")

    keychain.add_base(
        BaseCredential(
            name=args.name,
            access_key_id=args.access_key_id,
            secret_access_key=secret,
            mfa_serial=args.mfa_arn,
        )
    )
    print(f"✓ Stored credentials '{args.name}' ({args.access_key_id[:10]}***)", file=sys.stderr)
    if args.mfa_arn:
        print(f"✓ MFA device: {args.mfa_arn}", file=sys.stderr)
    return 0


def cmd_add_role(keychain, args):
    _check_name(args.name, "name")
    _check_name(args.role_name, "role name")
    if args.role_name == RoleChoice.NONE_SENTINEL:
        raise UsageError(f"'{RoleChoice.NONE_SENTINEL}' is reserved and cannot be a role name")
    if keychain.find_base(args.name) is None:
        raise NotFound(f"No credentials named '{args.name}' in the keychain")

    session_name = args.session_name or getpass.getuser()
    keychain.add_role(
        RoleDefinition(
            name=args.name,
            role_name=args.role_name,
            role_arn=args.role_arn,
            session_name=session_name,
        )
    )
    print(f"✓ Role '{args.role_name}' defined for '{args.name}'", file=sys.stderr)
    print(f"✓ Role ARN: {args.role_arn}", file=sys.stderr)
    print(f"✓ Session name: {session_name}", file=sys.stderr)
    return 0


def cmd_cat(resolver, args):
    active = resolver.resolve(args.name)
    print(f"[{args.name}]")
    print(f"aws_access_key_id = {active.access_key_id}")
    print(f"aws_secret_access_key = {active.secret_access_key}")
    if active.session_token:
        print(f"aws_session_token = {active.session_token}")
    if active.expiration is not None:
        print(f"expiration = {_format_timestamp(active.expiration)}")
    return 0


def cmd_env(resolver, args):
    active = resolver.resolve(args.name)
    # Quote values so the output is safe to eval
    for variable, value in credential_environment(active).items():
        if value:
            print(f"export {variable}={shlex.quote(value)}")
        else:
            print(f"unset {variable}")
    return 0


def cmd_shell(resolver, args, environ):
    active = resolver.resolve(args.name)
    env = dict(environ)
    for variable, value in credential_environment(active).items():
        if value:
            env[variable] = value
        else:
            env.pop(variable, None)
    env["AWS_KEYCHAIN_NAME"] = args.name

    shell = environ.get("SHELL") or "/bin/sh"
    print(f"ℹ Starting {shell} with credentials '{args.name}' ({active.source})", file=sys.stderr)
    return subprocess.call([shell], env=env)


def cmd_rm(keychain, resolver, args):
    active = resolver.resolve(args.name)
    if active.source == ROLE_SESSION:
        keychain.delete_session(ROLE, args.name)
        print(f"✓ Removed role session for '{args.name}'", file=sys.stderr)
    elif active.source == MFA_SESSION:
        keychain.delete_session(MFA, args.name)
        print(f"✓ Removed MFA session for '{args.name}'", file=sys.stderr)
    else:
        keychain.delete_base(args.name)
        print(f"✓ Removed credentials '{args.name}'", file=sys.stderr)
    return 0


def cmd_assume_role(exchange, args):
    if args.role_name is not None:
        _check_name(args.role_name, "role name")
    choice = RoleChoice.parse(args.role_name)
    session = exchange.assume_role(args.name, choice, args.mfa_code)
    if session is None:
        print(f"✓ Cleared cached sessions for '{args.name}'", file=sys.stderr)
        return 0
    print(f"✓ Assumed role '{choice.role_name}' for '{args.name}'", file=sys.stderr)
    print(f"✓ Credentials expire at: {format_expiry(session)}", file=sys.stderr)
    return 0


def cmd_mfa(exchange, args):
    session = exchange.issue_mfa_session(args.name, args.mfa_code)
    print(f"✓ MFA session started for '{args.name}'", file=sys.stderr)
    print(f"✓ Credentials expire at: {format_expiry(session)}", file=sys.stderr)
    return 0


def run(args, config, environ, client_factory=None, clock=time.time):
    """Dispatch a parsed command. Raises KeychainError subclasses."""
    keychain = Keychain.from_config(config)
    resolver = Resolver(keychain, clock=clock)

    if args.command == "ls":
        return cmd_ls(keychain, clock)
    if args.command == "add":
        return cmd_add(keychain, args, environ)
    if args.command == "add-role":
        return cmd_add_role(keychain, args)
    if args.command == "cat":
        return cmd_cat(resolver, args)
    if args.command == "env":
        return cmd_env(resolver, args)
    if args.command == "shell":
        return cmd_shell(resolver, args, environ)
    if args.command == "rm":
        return cmd_rm(keychain, resolver, args)

    exchange = TokenExchange(keychain, config, client_factory=client_factory)
    if args.command == "assume-role":
        return cmd_assume_role(exchange, args)
    if args.command == "mfa":
        return cmd_mfa(exchange, args)

    raise UsageError("A command is required")


def main(argv=None, environ=None, client_factory=None, clock=time.time):
    """Main CLI entry point."""
    if environ is None:
        environ = os.environ
    parser = build_parser()

    try:
        args = parser.parse_args(argv)
        if args.command is None:
            raise UsageError(f"A command is required\n{parser.format_usage().rstrip()}")
        config = Config.load(environ=environ, store_path=args.store)
        return run(args, config, environ, client_factory=client_factory, clock=clock)
    except UsageError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except NotFound as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except RemoteRejected as e:
        # Cached sessions for the scope were already cleared before the call
        print(f"Error: {e}", file=sys.stderr)
        return 0
    except RemoteError as e:
        print("Error: STS request failed", file=sys.stderr)
        print(f"Details: {e}", file=sys.stderr)
        return 1
    except StoreError as e:
        print("Error: Cannot use the keychain file", file=sys.stderr)
        print(f"Details: {e}", file=sys.stderr)
        return 1
    except KeychainError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
