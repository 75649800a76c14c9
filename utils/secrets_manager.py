"""
Secure Credential Storage

Persists the session bearer token across restarts using the system keyring
(Windows Credential Manager, macOS Keychain, Secret Service), falling back to
a Fernet-encrypted file when no keyring backend is usable.

Thread-safe: every read/write/delete holds the manager's lock.

Usage:
    from utils.secrets_manager import SecretsManager

    secrets = SecretsManager(storage_dir=Path.home() / ".tlc_library")
    secrets.set_credential("session_token", token)
    token = secrets.get_credential("session_token")
"""

import base64
import hashlib
import json
import os
import re
import secrets as secrets_module
import sys
import threading
from pathlib import Path
from typing import Dict, Optional

import keyring
from cryptography.fernet import Fernet, InvalidToken
from keyring.errors import KeyringError, PasswordDeleteError

from config.constants import StorageKeys
from utils.logging_config import get_logger

logger = get_logger(__name__)


class SecretsManager:
    """
    Stores small secrets under a service name.

    Uses the system keyring when available; otherwise an encrypted JSON file
    in ``storage_dir``.
    """

    # Key names are restricted to avoid injection into keyring/file keys
    _KEY_NAME_PATTERN = re.compile(r'^[a-zA-Z][a-zA-Z0-9_-]{0,63}$')
    _FERNET_PREFIX = "fernet:"

    def __init__(
        self,
        storage_dir: Path,
        service_name: str = StorageKeys.SERVICE_NAME,
        use_keyring: bool = True,
    ):
        self.service_name = service_name
        self.storage_dir = Path(storage_dir)
        self._lock = threading.RLock()
        self._use_keyring = use_keyring and self._keyring_usable()
        self._cached_key: Optional[bytes] = None

    @property
    def secrets_file(self) -> Path:
        return self.storage_dir / ".secrets"

    @property
    def key_file(self) -> Path:
        return self.storage_dir / ".encryption_key"

    @property
    def backend_name(self) -> str:
        return "keyring" if self._use_keyring else "file"

    def _keyring_usable(self) -> bool:
        try:
            keyring.get_password(self.service_name, "availability-check")
            return True
        except KeyringError as e:
            logger.info("System keyring unavailable (%s); using encrypted file", type(e).__name__)
            return False
        except RuntimeError as e:
            logger.info("System keyring unavailable (%s); using encrypted file", e)
            return False

    def _validate_key_name(self, key_name: str) -> bool:
        if not key_name or not isinstance(key_name, str):
            return False
        return bool(self._KEY_NAME_PATTERN.match(key_name))

    # -------------------- public API --------------------

    def set_credential(self, key_name: str, key_value: str) -> bool:
        """
        Store a credential.

        Returns:
            True if stored (and read back) successfully
        """
        if not self._validate_key_name(key_name):
            logger.warning("Invalid key name format: rejected")
            return False
        if not key_value or not key_value.strip():
            return False

        with self._lock:
            if self._use_keyring:
                try:
                    keyring.set_password(self.service_name, key_name, key_value)
                    # Some backends report success without persisting
                    if keyring.get_password(self.service_name, key_name) == key_value:
                        return True
                    logger.warning("Keyring write verification failed; falling back to file storage")
                except KeyringError as e:
                    logger.debug("Keyring storage failed: %s", type(e).__name__)
                self._use_keyring = False

            return self._store_to_file(key_name, key_value)

    def get_credential(self, key_name: str) -> Optional[str]:
        """Return the stored credential or None."""
        if not self._validate_key_name(key_name):
            logger.warning("Invalid key name format: rejected")
            return None

        with self._lock:
            if self._use_keyring:
                try:
                    value = keyring.get_password(self.service_name, key_name)
                    if value:
                        return value
                except KeyringError as e:
                    logger.debug("Keyring retrieval failed: %s", type(e).__name__)
                    self._use_keyring = False

            return self._read_from_file(key_name)

    def delete_credential(self, key_name: str) -> bool:
        """
        Remove a credential from every backend.

        Returns:
            True if something was deleted
        """
        if not self._validate_key_name(key_name):
            return False

        deleted = False
        with self._lock:
            if self._use_keyring:
                try:
                    keyring.delete_password(self.service_name, key_name)
                    deleted = True
                except PasswordDeleteError:
                    pass
                except KeyringError as e:
                    logger.debug("Keyring delete failed: %s", type(e).__name__)

            # The file may hold a copy from an earlier keyring failure
            if self._delete_from_file(key_name):
                deleted = True

        return deleted

    # -------------------- file fallback --------------------

    def _read_secrets_file(self) -> Dict[str, str]:
        if not self.secrets_file.exists():
            return {}
        try:
            with open(self.secrets_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Unreadable secrets file, ignoring: %s", type(e).__name__)
            return {}
        return data if isinstance(data, dict) else {}

    def _write_secrets_file(self, data: Dict[str, str]) -> None:
        self.storage_dir.mkdir(parents=True, exist_ok=True)
        # Atomic replace so an abrupt shutdown never leaves a torn file
        tmp_file = self.secrets_file.with_suffix(".tmp")
        with open(tmp_file, 'w', encoding='utf-8') as f:
            json.dump(data, f)
        os.replace(tmp_file, self.secrets_file)
        self._set_file_permissions(self.secrets_file)

    def _store_to_file(self, key_name: str, key_value: str) -> bool:
        try:
            data = self._read_secrets_file()
            data[key_name] = self._encrypt(key_value)
            self._write_secrets_file(data)
            return True
        except OSError as e:
            logger.error("Failed to store credential to file: %s", e)
            return False

    def _read_from_file(self, key_name: str) -> Optional[str]:
        encrypted = self._read_secrets_file().get(key_name)
        if not encrypted:
            return None
        try:
            return self._decrypt(encrypted)
        except (InvalidToken, ValueError) as e:
            logger.warning("Stored credential could not be decrypted: %s", type(e).__name__)
            return None

    def _delete_from_file(self, key_name: str) -> bool:
        data = self._read_secrets_file()
        if key_name not in data:
            return False
        del data[key_name]
        try:
            self._write_secrets_file(data)
        except OSError as e:
            logger.error("Failed to delete credential from file: %s", e)
            return False
        return True

    @staticmethod
    def _set_file_permissions(file_path: Path) -> None:
        # Windows ACLs are left alone; the content is encrypted
        if sys.platform == 'win32':
            return
        try:
            os.chmod(file_path, 0o600)
        except OSError as e:
            logger.warning("Failed to set file permissions: %s", e)

    # -------------------- encryption --------------------

    def _get_fernet_key(self) -> bytes:
        """
        Fernet key, in priority order:
        1. TLC_SECRETS_ENCRYPTION_KEY environment variable (>= 32 chars)
        2. Random key persisted in ``storage_dir`` (generated on first use)
        """
        env_key = os.getenv('TLC_SECRETS_ENCRYPTION_KEY')
        if env_key and len(env_key) >= 32:
            return base64.urlsafe_b64encode(hashlib.sha256(env_key.encode()).digest())

        if self._cached_key is not None:
            return self._cached_key

        raw_key = ""
        if self.key_file.exists():
            raw_key = self.key_file.read_text(encoding='utf-8').strip()

        if len(raw_key) < 32:
            self.storage_dir.mkdir(parents=True, exist_ok=True)
            raw_key = secrets_module.token_hex(32)
            self.key_file.write_text(raw_key, encoding='utf-8')
            self._set_file_permissions(self.key_file)
            logger.debug("Generated new local encryption key at %s", self.key_file)

        self._cached_key = base64.urlsafe_b64encode(hashlib.sha256(raw_key.encode()).digest())
        return self._cached_key

    def _encrypt(self, text: str) -> str:
        token = Fernet(self._get_fernet_key()).encrypt(text.encode('utf-8'))
        return self._FERNET_PREFIX + token.decode('utf-8')

    def _decrypt(self, encrypted: str) -> str:
        if not encrypted.startswith(self._FERNET_PREFIX):
            raise ValueError("Unknown encryption format")
        payload = encrypted[len(self._FERNET_PREFIX):]
        return Fernet(self._get_fernet_key()).decrypt(payload.encode('utf-8')).decode('utf-8')
