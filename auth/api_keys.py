"""API key issuance, validation and revocation."""

from __future__ import annotations

import asyncio
import hashlib
import hmac
import logging
import re
import secrets
from datetime import datetime, timezone
from threading import Lock
from typing import Dict, List, Optional, Tuple
from uuid import uuid4

from config import ApiKeySettings, get_api_key_settings
from core import ApiCredential, IssuedCredential
from utils.exceptions import CredentialLimitExceeded, Unauthorized

logger = logging.getLogger(__name__)

DISPLAY_PREFIX_CHARS = 8


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def hash_api_key(key: str, salt: str) -> str:
    """Salted one-way hash used for storage and lookup."""
    return hmac.new(salt.encode("utf-8"), key.encode("utf-8"), hashlib.sha256).hexdigest()


def generate_api_key(prefix: str) -> Tuple[str, str]:
    """Return (plaintext key, display prefix). The key is the prefix plus 32 random bytes, base64url."""
    key = f"{prefix}{secrets.token_urlsafe(32)}"
    return key, key[: len(prefix) + DISPLAY_PREFIX_CHARS]


class InMemoryCredentialStore:
    """Thread-safe credential table indexed by id and by hash."""

    def __init__(self) -> None:
        self._by_id: Dict[str, ApiCredential] = {}
        self._by_hash: Dict[str, str] = {}
        self._lock = Lock()

    def insert_if_below(self, credential: ApiCredential, max_active: int) -> bool:
        """Insert unless the owner already has ``max_active`` active keys."""
        with self._lock:
            if self._active_for(credential.owner_id) >= max_active:
                return False
            self._by_id[credential.id] = credential.model_copy(deep=True)
            self._by_hash[credential.key_hash] = credential.id
            return True

    def get_by_hash(self, key_hash: str) -> Optional[ApiCredential]:
        with self._lock:
            key_id = self._by_hash.get(key_hash)
            item = self._by_id.get(key_id) if key_id else None
            return item.model_copy(deep=True) if item else None

    def list_for_owner(self, owner_id: str) -> List[ApiCredential]:
        with self._lock:
            items = [item.model_copy(deep=True) for item in self._by_id.values() if item.owner_id == owner_id]
        return sorted(items, key=lambda item: item.created_at, reverse=True)

    def _active_for(self, owner_id: str) -> int:
        return sum(1 for item in self._by_id.values() if item.owner_id == owner_id and item.active)

    def revoke(self, owner_id: str, key_id: str) -> Optional[ApiCredential]:
        """Soft delete. Returns None when the key is unknown, foreign or already revoked."""
        with self._lock:
            item = self._by_id.get(key_id)
            if item is None or item.owner_id != owner_id or not item.active:
                return None
            item.revoked_at = _utcnow()
            return item.model_copy(deep=True)

    def touch(self, key_id: str, when: datetime) -> None:
        with self._lock:
            item = self._by_id.get(key_id)
            if item is not None:
                item.last_used_at = when


class ApiKeyService:
    """
    Manages bearer keys for the public API.

    Only the salted hash of a key is stored; the plaintext is returned once, at
    creation. Validation updates ``last_used_at`` off the request path when an
    event loop is running.
    """

    def __init__(
        self,
        *,
        store: Optional[InMemoryCredentialStore] = None,
        settings: Optional[ApiKeySettings] = None,
    ) -> None:
        self.settings = settings or get_api_key_settings()
        self.store = store or InMemoryCredentialStore()
        self._bearer = re.compile(rf"^Bearer\s+({re.escape(self.settings.prefix)}[A-Za-z0-9_-]+)$")

    def issue(self, owner_id: str, name: str) -> IssuedCredential:
        name = str(name or "").strip()
        if not name:
            raise ValueError("Name is required")

        key, display_prefix = generate_api_key(self.settings.prefix)
        credential = ApiCredential(
            id=uuid4().hex,
            owner_id=owner_id,
            name=name,
            key_hash=hash_api_key(key, self.settings.salt),
            key_prefix=display_prefix,
        )
        if not self.store.insert_if_below(credential, self.settings.max_active):
            raise CredentialLimitExceeded(self.settings.max_active)

        logger.info("api_key_issued owner_id=%s key_id=%s prefix=%s", owner_id, credential.id, display_prefix)
        return IssuedCredential(credential=credential, key=key)

    def list_keys(self, owner_id: str) -> List[ApiCredential]:
        return self.store.list_for_owner(owner_id)

    def revoke(self, owner_id: str, key_id: str) -> bool:
        revoked = self.store.revoke(owner_id, key_id)
        if revoked is not None:
            logger.info("api_key_revoked owner_id=%s key_id=%s", owner_id, key_id)
        return revoked is not None

    def authenticate(self, authorization: Optional[str]) -> ApiCredential:
        """Resolve an ``Authorization`` header to an active credential or raise Unauthorized."""
        if not authorization:
            raise Unauthorized("Missing Authorization header")

        match = self._bearer.match(authorization.strip())
        if not match:
            raise Unauthorized(f"Invalid Authorization format. Use: Bearer {self.settings.prefix}xxx")

        credential = self.store.get_by_hash(hash_api_key(match.group(1), self.settings.salt))
        if credential is None:
            raise Unauthorized("Invalid API key")
        if not credential.active:
            raise Unauthorized("API key has been revoked")

        self._record_use(credential.id)
        return credential

    def _record_use(self, key_id: str) -> None:
        now = _utcnow()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.store.touch(key_id, now)
            return
        loop.call_soon(self.store.touch, key_id, now)
