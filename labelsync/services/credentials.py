"""
Credential encryption/decryption and marketplace credential access.
"""
import json
import base64
import logging
from typing import Any

from cryptography.fernet import Fernet, InvalidToken
from sqlalchemy.orm import Session

from labelsync.config import settings
from labelsync.models import MarketplaceCredential

logger = logging.getLogger(__name__)

def get_encryption_key() -> bytes:
    """Derive the Fernet key from ENCRYPTION_KEY"""
    key_str = settings.ENCRYPTION_KEY
    # Fernet wants 32 url-safe base64 encoded bytes
    key_bytes = key_str.encode()[:32].ljust(32, b'0')
    return base64.urlsafe_b64encode(key_bytes)

def encrypt_token(token: str) -> str:
    """Encrypt a token"""
    f = Fernet(get_encryption_key())
    return f.encrypt(token.encode()).decode()

def decrypt_token(encrypted: str) -> str:
    """Decrypt a token"""
    f = Fernet(get_encryption_key())
    return f.decrypt(encrypted.encode()).decode()


def save_marketplace_credentials(db: Session, user_id: str, marketplace: str, values: dict[str, Any]) -> MarketplaceCredential:
    """Encrypt and store a credential bundle (used by the settings UI and seed scripts)."""
    cred = (
        db.query(MarketplaceCredential)
        .filter(
            MarketplaceCredential.user_id == user_id,
            MarketplaceCredential.marketplace == marketplace,
        )
        .first()
    )
    encrypted = encrypt_token(json.dumps(values))
    if cred:
        cred.value_encrypted = encrypted
    else:
        cred = MarketplaceCredential(user_id=user_id, marketplace=marketplace, value_encrypted=encrypted)
        db.add(cred)
    db.commit()
    return cred


def get_marketplace_credentials(db: Session, user_id: str, marketplace: str) -> dict[str, Any] | None:
    """Return the decrypted credential dict for the user and marketplace, or None."""
    cred = (
        db.query(MarketplaceCredential)
        .filter(
            MarketplaceCredential.user_id == user_id,
            MarketplaceCredential.marketplace == marketplace,
        )
        .first()
    )
    if not cred or not cred.value_encrypted:
        return None
    try:
        dec = decrypt_token(cred.value_encrypted)
    except InvalidToken:
        logger.warning("Stored %s credentials for user %s cannot be decrypted", marketplace, user_id)
        return None
    if dec.strip().startswith("{"):
        try:
            return json.loads(dec)
        except ValueError:
            logger.warning("Stored %s credentials for user %s are not valid JSON", marketplace, user_id)
            return None
    return {"apiKey": dec}


def list_configured_marketplaces(db: Session, user_id: str) -> list[str]:
    """Marketplaces the user has saved credentials for, in a stable order."""
    rows = (
        db.query(MarketplaceCredential.marketplace)
        .filter(
            MarketplaceCredential.user_id == user_id,
            MarketplaceCredential.value_encrypted.isnot(None),
        )
        .order_by(MarketplaceCredential.marketplace)
        .all()
    )
    return [marketplace for (marketplace,) in rows]
