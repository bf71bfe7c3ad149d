"""Encryption of account secret keys at rest."""
import base64
import os

from cryptography.hazmat.primitives import hashes, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

SALT = b"vault_pool_salt_v1"
ITERATIONS = 100000


class KeyCipher:
    """Encrypt/decrypt secret keys with a key derived from a master key."""

    def __init__(self, master_key: str):
        """
        Args:
            master_key: Master key the AES key is derived from
        """
        if not master_key:
            raise ValueError("Master key is required")
        self._master_key = master_key
        self._derived_key = None

    def _get_derived_key(self) -> bytes:
        if self._derived_key is None:
            kdf = PBKDF2HMAC(
                algorithm=hashes.SHA256(),
                length=32,  # AES-256
                salt=SALT,
                iterations=ITERATIONS,
            )
            self._derived_key = kdf.derive(self._master_key.encode())
        return self._derived_key

    def encrypt(self, secret: str) -> str:
        """
        Encrypt a secret: derived key -> AES-CBC -> Base64(IV + ciphertext).
        """
        iv = os.urandom(16)
        encryptor = Cipher(algorithms.AES(self._get_derived_key()), modes.CBC(iv)).encryptor()

        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(secret.encode("utf-8")) + padder.finalize()

        ciphertext = encryptor.update(padded) + encryptor.finalize()
        return base64.b64encode(iv + ciphertext).decode("utf-8")

    def decrypt(self, token: str) -> str:
        """
        Decrypt a value produced by encrypt().

        Raises:
            ValueError: The token is malformed or was encrypted with another master key
        """
        data = base64.b64decode(token.encode("utf-8"))
        iv, ciphertext = data[:16], data[16:]
        decryptor = Cipher(algorithms.AES(self._get_derived_key()), modes.CBC(iv)).decryptor()
        padded = decryptor.update(ciphertext) + decryptor.finalize()

        unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
        secret = unpadder.update(padded) + unpadder.finalize()
        return secret.decode("utf-8")
