import hashlib


def hash_client_id(raw_identifier: str) -> str:
    """One-way SHA-256 digest of a client identifier, as lowercase hex."""
    return hashlib.sha256(raw_identifier.encode("utf-8")).hexdigest()
