"""
SSH-key based encryption for secrets kept in the keychain file.
"""

import base64
import os
import struct

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from .exceptions import StoreError

ENCRYPTED_PREFIX = "__encrypted__:"


def get_default_ssh_key_path():
    """Get the path to the default SSH private key."""
    return os.path.expanduser("~/.ssh/id_ed25519")


def is_ssh_key_password_protected(ssh_key_path):
    """
    Detect if an SSH private key is password protected.

    Parses the OPENSSH container and checks the cipher field:
    "none" means not encrypted, anything else means password protected.

    Args:
        ssh_key_path: Path to SSH private key

    Returns:
        bool: True if password protected, False if not, None if cannot determine
    """
    try:
        with open(ssh_key_path, "r") as f:
            lines = f.readlines()

        key_lines = []
        in_key = False
        for line in lines:
            if "BEGIN" in line:
                in_key = True
                continue
            if "END" in line:
                break
            if in_key:
                key_lines.append(line.strip())

        if not key_lines:
            return None

        key_blob = base64.b64decode("".join(key_lines))

        # Magic: "openssh-key-v1\0" (15 bytes), then a length-prefixed cipher name
        if key_blob[:15] != b"openssh-key-v1\0":
            return None

        pos = 15
        if pos + 4 > len(key_blob):
            return None
        cipher_len = struct.unpack(">I", key_blob[pos : pos + 4])[0]
        pos += 4

        if cipher_len > len(key_blob) - pos or cipher_len > 1024:
            return None

        cipher_name = key_blob[pos : pos + cipher_len].decode()
        return cipher_name != "none"

    except (ValueError, UnicodeDecodeError, struct.error, OSError):
        return None


def derive_encryption_key(ssh_key_path):
    """
    Derive an AES-256 key from the SSH private key file using HKDF.

    Raises:
        StoreError: If the SSH key cannot be read
    """
    try:
        with open(ssh_key_path, "rb") as f:
            ssh_key_data = f.read()
    except FileNotFoundError:
        raise StoreError(
            f"SSH key not found at {ssh_key_path}\n"
            f"  To fix: Generate an ED25519 key with: ssh-keygen -t ed25519 -f {ssh_key_path}"
        )
    except PermissionError:
        raise StoreError(
            f"Permission denied reading SSH key at {ssh_key_path}\n"
            f"  To fix: chmod 600 {ssh_key_path}"
        )

    hkdf = HKDF(
        algorithm=hashes.SHA256(),
        length=32,
        salt=b"aws-keychain-v1-salt",
        info=b"aws-keychain-secret",
        backend=default_backend(),
    )
    return hkdf.derive(ssh_key_data)


def encrypt_secret(value, ssh_key_path):
    """
    Encrypt a secret with the SSH-key derived key.

    Returns:
        str: __encrypted__:<base64(nonce + ciphertext)>

    Raises:
        StoreError: If the SSH key is not password protected or unreadable
    """
    is_protected = is_ssh_key_password_protected(ssh_key_path)
    if is_protected is False:
        raise StoreError(
            f"SSH key '{ssh_key_path}' is not password protected. "
            f"Only password-protected SSH keys can be used for encryption. "
            f"Add a passphrase: ssh-keygen -p -f {ssh_key_path}"
        )
    elif is_protected is None:
        raise StoreError(
            f"Could not verify if SSH key '{ssh_key_path}' is password protected. "
            f"Please ensure it's a valid OPENSSH format key."
        )

    nonce = os.urandom(12)
    ciphertext = AESGCM(derive_encryption_key(ssh_key_path)).encrypt(nonce, value.encode(), None)
    return ENCRYPTED_PREFIX + base64.b64encode(nonce + ciphertext).decode()


def decrypt_secret(value, ssh_key_path):
    """
    Decrypt a secret produced by encrypt_secret. Plain values are returned as-is.

    Raises:
        StoreError: On corrupted data or a key mismatch
    """
    if not is_encrypted(value):
        return value

    if ssh_key_path is None:
        raise StoreError(
            "The keychain holds encrypted secrets but no SSH key is configured\n"
            "  To fix: set AWS_KEYCHAIN_SSH_KEY or 'ssh_key' in the [aws-keychain] config section"
        )

    try:
        encrypted_data = base64.b64decode(value[len(ENCRYPTED_PREFIX) :], validate=True)
    except ValueError:
        raise StoreError("Corrupted encrypted secret (invalid base64 encoding)")

    # 12 bytes nonce + at least 1 byte ciphertext + 16 bytes auth tag
    if len(encrypted_data) < 29:
        raise StoreError(
            f"Invalid encrypted secret: too short ({len(encrypted_data)} bytes, expected at least 29)"
        )

    nonce = encrypted_data[:12]
    ciphertext = encrypted_data[12:]
    try:
        plaintext = AESGCM(derive_encryption_key(ssh_key_path)).decrypt(nonce, ciphertext, None)
    except InvalidTag:
        raise StoreError(
            f"Decryption failed (authentication tag mismatch or wrong key)\n"
            f"  Possible causes:\n"
            f"    - SSH key at {ssh_key_path} is not the key used for encryption\n"
            f"    - The keychain file has been tampered with or corrupted"
        )
    return plaintext.decode()


def is_encrypted(value):
    """Check if a stored value is encrypted."""
    return isinstance(value, str) and value.startswith(ENCRYPTED_PREFIX)
