"""
Credential resolution for storage accounts.

The pool only ever asks a provider for ConnectionParams, so the way secret
keys are stored can change without touching selection or upload code.
"""
from typing import Optional

from . import config
from .crypto import KeyCipher
from .models import Account, ConnectionParams


class CredentialProvider:
    """Turns a stored account into usable connection parameters."""

    def resolve(self, account: Account) -> ConnectionParams:
        raise NotImplementedError

    def seal(self, secret_key: str) -> str:
        """Return the value to persist in the registry for a secret key."""
        raise NotImplementedError


class PlainCredentials(CredentialProvider):
    """Secret keys are stored as-is by the registry."""

    def resolve(self, account: Account) -> ConnectionParams:
        return ConnectionParams(project_url=account.project_url, secret_key=account.secret_key)

    def seal(self, secret_key: str) -> str:
        return secret_key


class EncryptedCredentials(CredentialProvider):
    """Secret keys are stored encrypted with a master key."""

    def __init__(self, master_key: str):
        self._cipher = KeyCipher(master_key)

    def resolve(self, account: Account) -> ConnectionParams:
        return ConnectionParams(
            project_url=account.project_url,
            secret_key=self._cipher.decrypt(account.secret_key),
        )

    def seal(self, secret_key: str) -> str:
        return self._cipher.encrypt(secret_key)


def default_credentials(master_key: Optional[str] = None) -> CredentialProvider:
    """Encrypted credentials when a master key is configured, plain otherwise."""
    master_key = master_key or config.MASTER_KEY
    if master_key:
        return EncryptedCredentials(master_key)
    return PlainCredentials()
