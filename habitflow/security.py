import hashlib
import hmac
import secrets
from dataclasses import dataclass

from habitflow.settings import settings


API_KEY_PREFIX = "hf_"


@dataclass(frozen=True)
class MintedKey:
    raw: str
    digest: str
    prefix: str


def _require_api_key_secret() -> str:
    secret = settings.API_KEY_SECRET
    if not secret:
        raise RuntimeError("API_KEY_SECRET is required to hash API keys")
    return secret


def hash_api_key(raw_key: str) -> str:
    secret = _require_api_key_secret()
    return hmac.new(secret.encode("utf-8"), raw_key.encode("utf-8"), hashlib.sha256).hexdigest()


def mint_api_key(prefix_length: int = 8) -> MintedKey:
    """Generate a user key; only the digest and display prefix are stored."""
    raw = f"{API_KEY_PREFIX}{secrets.token_urlsafe(32)}"
    return MintedKey(raw=raw, digest=hash_api_key(raw), prefix=raw[:prefix_length])


def service_key_matches(provided: str | None) -> bool:
    expected = settings.API_KEY
    if not expected:
        return True
    if provided is None:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))
