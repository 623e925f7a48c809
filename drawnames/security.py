from __future__ import annotations

import base64
import hashlib

from cryptography.fernet import Fernet, InvalidToken
from flask import current_app
from passlib.context import CryptContext


pwd_context = CryptContext(
    schemes=["argon2"],
    deprecated="auto",
)


def hash_client_key(client_hash: str) -> str:
    """Store an argon2 hash of the client-provided SHA-256(passphrase)."""
    return pwd_context.hash(client_hash)


def verify_client_key(client_hash: str, stored_hash: str) -> bool:
    return pwd_context.verify(client_hash, stored_hash)


# ---------------------------------------------------------------------------
# Recipient encryption-at-rest
#
# The organizer runs the draw but must not be able to read who drew whom,
# neither through the API nor by opening the database. Each Draw row keeps
# only a Fernet token of the recipient id, bound to its event and giver.
#
# NOTE: whoever holds SECRET_KEY / RECIPIENT_ENC_KEY can still decrypt.
# ---------------------------------------------------------------------------


def _recipient_fernet() -> Fernet:
    """Fernet keyed by RECIPIENT_ENC_KEY, or derived from SECRET_KEY."""
    explicit = (current_app.config.get("RECIPIENT_ENC_KEY") or "").strip()
    if explicit:
        # Expect a urlsafe base64-encoded 32-byte key.
        return Fernet(explicit.encode("utf-8"))

    # Derive a stable key so decrypt works across restarts.
    secret = (current_app.config.get("SECRET_KEY") or "").encode("utf-8")
    digest = hashlib.sha256(b"drawnames-recipients|" + secret).digest()
    return Fernet(base64.urlsafe_b64encode(digest))


def _payload(event_id: int, giver_id: int, recipient_id: int) -> bytes:
    return f"{int(event_id)}:{int(giver_id)}:{int(recipient_id)}".encode("utf-8")


def encrypt_recipient(event_id: int, giver_id: int, recipient_id: int) -> str:
    token = _recipient_fernet().encrypt(_payload(event_id, giver_id, recipient_id))
    return token.decode("utf-8")


def decrypt_recipient(event_id: int, giver_id: int, token: str) -> int:
    """Decrypt a Draw token back to the recipient id. Raises ValueError on failure."""
    try:
        raw = _recipient_fernet().decrypt(token.encode("utf-8")).decode("utf-8")
        token_event, token_giver, recipient = (int(part) for part in raw.split(":"))
    except (InvalidToken, ValueError, TypeError) as e:
        raise ValueError("Invalid recipient token") from e

    # A token copied onto another row must not decrypt for that row.
    if (token_event, token_giver) != (int(event_id), int(giver_id)):
        raise ValueError("Recipient token does not belong to this draw")
    return recipient
