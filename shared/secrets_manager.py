"""
Secrets management for the gateway's signing credentials.
"""

import os
import json
import base64
from typing import Dict, Optional
from cryptography.fernet import Fernet
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from shared.config import BaseConfig
from shared.logging import get_logger
from shared.signing import SigningCredentials

logger = get_logger("shared.secrets")


class SecretsManager:
    """
    Reads secrets from the environment or a Fernet-encrypted JSON file.
    """

    def __init__(self, master_key: str, secrets_file: Optional[str] = None):
        """
        Initialize the secrets manager.

        Args:
            master_key: Master key the file encryption key is derived from
            secrets_file: Path to a JSON object of encrypted secrets
        """
        if not master_key:
            raise ValueError("Master key is required")
        self.master_key = master_key
        self.secrets_file = secrets_file
        self._fernet = self._create_fernet()

    def _create_fernet(self) -> Fernet:
        """Derive the Fernet key from the master key."""
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=b'relay_access_layer',
            iterations=100000,
        )
        key = base64.urlsafe_b64encode(kdf.derive(self.master_key.encode()))
        return Fernet(key)

    def encrypt_secret(self, secret: str) -> str:
        """
        Encrypt a secret.

        Args:
            secret: Secret to encrypt

        Returns:
            Encrypted secret
        """
        return self._fernet.encrypt(secret.encode()).decode()

    def decrypt_secret(self, encrypted_secret: str) -> str:
        """
        Decrypt a secret.

        Args:
            encrypted_secret: Encrypted secret

        Returns:
            Decrypted secret
        """
        return self._fernet.decrypt(encrypted_secret.encode()).decode()

    def get_secret(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """
        Get a secret by key.

        Args:
            key: Secret key
            default: Default value if secret not found

        Returns:
            Secret value or default
        """
        # Environment first
        secret = os.getenv(f"ACCESS_{key.upper()}")
        if secret:
            return secret

        secrets = self._read_file()
        if key in secrets:
            return self.decrypt_secret(secrets[key])

        return default

    def write_secrets(self, values: Dict[str, str]) -> None:
        """Encrypt and write secrets, merging with any already on file."""
        if not self.secrets_file:
            raise ValueError("No secrets file configured")

        secrets = self._read_file()
        secrets.update({key: self.encrypt_secret(value) for key, value in values.items()})

        with open(self.secrets_file, 'w') as f:
            json.dump(secrets, f, indent=2)

    def _read_file(self) -> Dict[str, str]:
        if not self.secrets_file or not os.path.exists(self.secrets_file):
            return {}
        with open(self.secrets_file, 'r') as f:
            return json.load(f)


def load_signing_credentials(config: BaseConfig) -> Optional[SigningCredentials]:
    """Resolve the gateway credentials from settings or the encrypted file.

    Returns None when nothing is configured; the signer then fails closed on
    every call.
    """
    access_key_id = config.signing_access_key_id
    secret = config.signing_secret_access_key

    if config.master_key and (not access_key_id or not secret):
        manager = SecretsManager(config.master_key, config.secrets_file)
        access_key_id = access_key_id or manager.get_secret("signing_access_key_id", "")
        secret = secret or manager.get_secret("signing_secret_access_key", "")

    if not access_key_id and not secret:
        logger.warning("No signing credentials configured")
        return None

    return SigningCredentials(access_key_id=access_key_id or "", secret_access_key=secret or "")
