"""
Runtime configuration for aws-keychain.

Precedence, lowest to highest: built-in defaults, the [aws-keychain] section
of ~/.aws/config, environment variables, command line options.
"""

import configparser
import os

from .crypto import get_default_ssh_key_path
from .exceptions import ConfigError
from .store import get_default_store_path

CONFIG_SECTION = "aws-keychain"
DEFAULT_REGION = "us-east-1"

_TRUE_VALUES = ("1", "true", "yes", "on")


def get_aws_config_path():
    """Get the AWS config file path."""
    return os.path.expanduser("~/.aws/config")


def read_aws_config(config_file):
    """
    Read AWS config file.

    Returns:
        ConfigParser object with config
    """
    config = configparser.ConfigParser(interpolation=None)
    config.optionxform = str  # Preserve case sensitivity
    if os.path.exists(config_file):
        try:
            config.read(config_file)
        except configparser.Error as e:
            raise ConfigError(f"Cannot parse AWS config file {config_file}: {e}")
    return config


def _is_true(value):
    return str(value).strip().lower() in _TRUE_VALUES


class Config:
    """Settings passed explicitly to the keychain, resolver and token exchange."""

    def __init__(self, store_path=None, ssh_key_path=None, region=DEFAULT_REGION):
        self.store_path = store_path or get_default_store_path()
        # None means secrets are stored without encryption
        self.ssh_key_path = ssh_key_path
        self.region = region or DEFAULT_REGION

    def __repr__(self):
        return (
            f"Config(store_path={self.store_path!r}, ssh_key_path={self.ssh_key_path!r}, "
            f"region={self.region!r})"
        )

    @classmethod
    def load(cls, environ=None, aws_config_path=None, store_path=None):
        """
        Build a Config from ~/.aws/config, the environment and overrides.

        Args:
            environ: Mapping of environment variables (defaults to os.environ)
            aws_config_path: AWS config file to read the [aws-keychain] section from
            store_path: Explicit keychain file, e.g. from --store
        """
        if environ is None:
            environ = os.environ
        if aws_config_path is None:
            aws_config_path = get_aws_config_path()

        section = {}
        parser = read_aws_config(aws_config_path)
        for name in (CONFIG_SECTION, f"profile {CONFIG_SECTION}"):
            if name in parser:
                section = dict(parser[name])
                break

        path = section.get("store")
        encrypt = _is_true(section.get("encrypt", ""))
        ssh_key = section.get("ssh_key")
        region = section.get("region")

        if environ.get("AWS_KEYCHAIN_FILE"):
            path = environ["AWS_KEYCHAIN_FILE"]
        if "AWS_KEYCHAIN_ENCRYPT" in environ:
            encrypt = _is_true(environ["AWS_KEYCHAIN_ENCRYPT"])
        if environ.get("AWS_KEYCHAIN_SSH_KEY"):
            ssh_key = environ["AWS_KEYCHAIN_SSH_KEY"]
        region = environ.get("AWS_REGION") or environ.get("AWS_DEFAULT_REGION") or region

        if store_path:
            path = store_path

        ssh_key_path = None
        if encrypt:
            ssh_key_path = os.path.expanduser(ssh_key) if ssh_key else get_default_ssh_key_path()

        return cls(
            store_path=os.path.expanduser(path) if path else None,
            ssh_key_path=ssh_key_path,
            region=region,
        )
