"""Secure credential storage for WhisperFTP.

Uses the system keyring (Windows Credential Manager, macOS Keychain,
Linux Secret Service) to hold saved FTP passwords. The settings file
only ever stores an opaque reference to the keyring entry.
"""

import logging
import uuid

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

logger = logging.getLogger("whisper_ftp.credentials")


class CredentialEncryption:
    """
    Protects saved passwords with the system keyring.

    encrypt() and decrypt() never raise. When the keyring is unavailable
    the input is returned unchanged, so a saved connection still works
    (with its password stored as given).
    """

    SERVICE_NAME = "whisper-ftp"
    REFERENCE_PREFIX = "keyring:"

    def is_reference(self, value: str) -> bool:
        """True if value is a keyring reference produced by encrypt()."""
        return bool(value) and value.startswith(self.REFERENCE_PREFIX)

    def encrypt(self, plain_text: str) -> str:
        """
        Store a secret in the keyring.

        Args:
            plain_text: Password to protect

        Returns:
            Reference string to persist, "" for an empty input, or the
            input itself if the keyring could not store it
        """
        if not plain_text:
            return ""

        key = uuid.uuid4().hex
        try:
            keyring.set_password(self.SERVICE_NAME, key, plain_text)
        except Exception as e:
            logger.error(f"Encryption failed: {e}")
            return plain_text

        return f"{self.REFERENCE_PREFIX}{key}"

    def decrypt(self, encrypted_text: str) -> str:
        """
        Resolve a reference produced by encrypt().

        Args:
            encrypted_text: Stored reference (or a plain password)

        Returns:
            The secret, "" for an empty input, or the input itself if it
            is not a reference or the keyring has no matching entry
        """
        if not encrypted_text:
            return ""
        if not self.is_reference(encrypted_text):
            return encrypted_text

        key = encrypted_text[len(self.REFERENCE_PREFIX):]
        try:
            secret = keyring.get_password(self.SERVICE_NAME, key)
        except Exception as e:
            logger.error(f"Decryption failed: {e}")
            return encrypted_text

        if secret is None:
            logger.warning("No keyring entry for stored credential reference")
            return encrypted_text
        return secret

    def forget(self, encrypted_text: str) -> bool:
        """
        Remove the keyring entry behind a reference.

        Returns:
            True if an entry was deleted
        """
        if not self.is_reference(encrypted_text):
            return False

        key = encrypted_text[len(self.REFERENCE_PREFIX):]
        try:
            keyring.delete_password(self.SERVICE_NAME, key)
            return True
        except PasswordDeleteError:
            return False
        except KeyringError as e:
            logger.warning(f"Could not remove stored credential: {e}")
            return False
