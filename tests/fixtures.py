import hashlib


def client_hash(passphrase: str) -> str:
    """What the browser sends: SHA-256 of the passphrase, hex encoded."""
    return hashlib.sha256(passphrase.encode("utf-8")).hexdigest()
