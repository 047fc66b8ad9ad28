"""Tests for configuration loading."""

import os
import shutil
import tempfile
import unittest

from awskeychain.config import DEFAULT_REGION, Config
from awskeychain.exceptions import ConfigError


class TestConfigLoad(unittest.TestCase):
    """Defaults, ~/.aws/config section, environment and overrides."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.aws_config = os.path.join(self.temp_dir, "config")

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def write_aws_config(self, text):
        with open(self.aws_config, "w") as f:
            f.write(text)

    def test_defaults(self):
        config = Config.load(environ={}, aws_config_path=self.aws_config)
        self.assertTrue(config.store_path.endswith(os.path.join(".aws", "keychain")))
        self.assertTrue(config.store_path.startswith(os.path.expanduser("~")))
        self.assertIsNone(config.ssh_key_path)
        self.assertEqual(config.region, DEFAULT_REGION)

    def test_aws_config_section(self):
        self.write_aws_config(
            "[aws-keychain]\n"
            "store = /tmp/other-keychain\n"
            "encrypt = yes\n"
            "ssh_key = /tmp/id_test\n"
            "region = eu-central-1\n"
        )
        config = Config.load(environ={}, aws_config_path=self.aws_config)
        self.assertEqual(config.store_path, "/tmp/other-keychain")
        self.assertEqual(config.ssh_key_path, "/tmp/id_test")
        self.assertEqual(config.region, "eu-central-1")

    def test_encrypt_uses_default_ssh_key(self):
        self.write_aws_config("[profile aws-keychain]\nencrypt = true\n")
        config = Config.load(environ={}, aws_config_path=self.aws_config)
        self.assertEqual(config.ssh_key_path, os.path.expanduser("~/.ssh/id_ed25519"))

    def test_environment_overrides_config_file(self):
        self.write_aws_config("[aws-keychain]\nstore = /tmp/a\nencrypt = true\nregion = eu-west-1\n")
        config = Config.load(
            environ={
                "AWS_KEYCHAIN_FILE": "/tmp/b",
                "AWS_KEYCHAIN_ENCRYPT": "0",
                "AWS_DEFAULT_REGION": "us-west-2",
            },
            aws_config_path=self.aws_config,
        )
        self.assertEqual(config.store_path, "/tmp/b")
        self.assertIsNone(config.ssh_key_path)
        self.assertEqual(config.region, "us-west-2")

    def test_aws_region_beats_default_region(self):
        config = Config.load(
            environ={"AWS_REGION": "ap-south-1", "AWS_DEFAULT_REGION": "us-west-2"},
            aws_config_path=self.aws_config,
        )
        self.assertEqual(config.region, "ap-south-1")

    def test_ssh_key_from_environment(self):
        config = Config.load(
            environ={"AWS_KEYCHAIN_ENCRYPT": "1", "AWS_KEYCHAIN_SSH_KEY": "/tmp/id_env"},
            aws_config_path=self.aws_config,
        )
        self.assertEqual(config.ssh_key_path, "/tmp/id_env")

    def test_malformed_aws_config(self):
        self.write_aws_config("this is not an ini file\n[aws-keychain]\n")
        with self.assertRaises(ConfigError):
            Config.load(environ={}, aws_config_path=self.aws_config)

    def test_explicit_store_path_wins(self):
        config = Config.load(
            environ={"AWS_KEYCHAIN_FILE": "/tmp/b"},
            aws_config_path=self.aws_config,
            store_path="/tmp/c",
        )
        self.assertEqual(config.store_path, "/tmp/c")


if __name__ == "__main__":
    unittest.main()
