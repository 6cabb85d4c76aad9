# fibersync/utils/security.py
"""Fernet encryption for credentials stored at rest (RADIUS API, SMS gateway)."""
import logging
import os

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)

ENCRYPTION_KEY = os.getenv("ENCRYPTION_KEY")
APP_ENV = os.getenv("APP_ENV", "development")

if not ENCRYPTION_KEY:
    if APP_ENV == "production":
        raise RuntimeError(
            "FATAL: ENCRYPTION_KEY is not configured. "
            "It is required in production to encrypt RADIUS and SMS gateway credentials."
        )
    logger.warning("ENCRYPTION_KEY is not configured. Credential encryption is DISABLED.")
    cipher_suite = None
else:
    try:
        cipher_suite = Fernet(ENCRYPTION_KEY.encode())
    except ValueError as e:
        if APP_ENV == "production":
            raise RuntimeError(
                f"FATAL: invalid ENCRYPTION_KEY: {e}. "
                'Generate one with: python -c "from cryptography.fernet import Fernet; '
                'print(Fernet.generate_key().decode())"'
            )
        logger.error(f"Could not initialise Fernet with ENCRYPTION_KEY: {e}")
        cipher_suite = None


def encrypt_data(data: str) -> str:
    """Encrypts a string."""
    if not cipher_suite or not data:
        return data
    return cipher_suite.encrypt(data.encode()).decode()


def decrypt_data(token: str) -> str:
    """Decrypts a token. Values stored before encryption was enabled pass through."""
    if not cipher_suite or not token:
        return token
    try:
        return cipher_suite.decrypt(token.encode()).decode()
    except InvalidToken:
        logger.warning("Could not decrypt a stored credential. Assuming legacy plain text.")
        return token
