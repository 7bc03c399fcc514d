"""
Recipient token storage.

A recipient is one Firestore document keyed by the normalized identity
(usually the user's e-mail). Its tokens live in an array field whose
entries are maps carrying the FCM token under ``fcmToken``; older clients
wrote bare strings, which are still read.
"""
import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from firebase_admin import firestore

from fleetnotify.models.notification import TokenRecord
from fleetnotify.services.errors import NotFoundError, StoreError

logger = logging.getLogger(__name__)

TOKEN_KEY = 'fcmToken'
QUOTE_CHARS = '"\'`‘’“”'
_QUOTE_TABLE = str.maketrans('', '', QUOTE_CHARS)


def normalize_identity(value) -> str:
    """Trim, drop quote characters and lower-case an identity key."""
    if value is None:
        return ''
    return str(value).translate(_QUOTE_TABLE).strip().lower()


def is_valid_identity_key(key: str) -> bool:
    """Whether a normalized key can be used as a Firestore document id."""
    if not key or '/' in key or key in ('.', '..'):
        return False
    # ids matching __.*__ are reserved by Firestore
    return not (len(key) > 4 and key.startswith('__') and key.endswith('__'))


def entry_token(entry) -> Optional[str]:
    if isinstance(entry, str):
        return entry or None
    if isinstance(entry, dict):
        token = entry.get(TOKEN_KEY)
        return token if isinstance(token, str) and token else None
    return None


def records_from_entries(entries: Iterable) -> List[TokenRecord]:
    """Build TokenRecords from stored entries, skipping blanks and duplicates."""
    records = []
    seen = set()
    for entry in entries or []:
        token = entry_token(entry)
        if not token or token in seen:
            continue
        seen.add(token)
        platform = None
        registered_at = None
        if isinstance(entry, dict):
            platform = entry.get('platform') if isinstance(entry.get('platform'), str) else None
            created = entry.get('createdAt') or entry.get('registeredAt')
            registered_at = created if isinstance(created, datetime) else None
        records.append(TokenRecord(token=token, platform=platform, registered_at=registered_at))
    return records


class TokenStore(ABC):
    """Lookup and pruning of a recipient's push tokens."""

    @abstractmethod
    def lookup(self, identity: str) -> List[TokenRecord]:
        """Return the recipient's tokens. Raises NotFoundError when there is no recipient."""
        pass

    @abstractmethod
    def prune_invalid(self, identity: str, invalid_tokens: Iterable[str]) -> None:
        """Remove exactly the given tokens from the recipient."""
        pass


class FirestoreTokenStore(TokenStore):
    def __init__(self, client, collection='token-usuarios', field='fcmTokens'):
        self.client = client
        self.collection = collection
        self.field = field

    @classmethod
    def from_config(cls, config, app=None):
        return cls(
            firestore.client(app=app),
            collection=config.get('TOKEN_COLLECTION', 'token-usuarios'),
            field=config.get('TOKEN_FIELD', 'fcmTokens'),
        )

    def _document(self, key):
        return self.client.collection(self.collection).document(key)

    def _read(self, key):
        try:
            snapshot = self._document(key).get()
        except Exception as e:
            logger.error(f"Error reading tokens for '{key}': {e}", exc_info=True)
            raise StoreError("Could not read recipient tokens.")
        if not snapshot.exists:
            return None
        return snapshot.to_dict() or {}

    def lookup(self, identity):
        key = normalize_identity(identity)
        data = self._read(key)
        if data is None:
            logger.info(f"No token document found for '{key}'")
            raise NotFoundError(f"No user/tokens associated with {key}.")
        return records_from_entries(data.get(self.field, []))

    def prune_invalid(self, identity, invalid_tokens):
        invalid = set(invalid_tokens or ())
        if not invalid:
            return
        key = normalize_identity(identity)
        data = self._read(key)
        if data is None:
            return

        stale = [entry for entry in data.get(self.field, []) if entry_token(entry) in invalid]
        if not stale:
            return
        try:
            # ArrayRemove drops only these entries; tokens registered meanwhile survive
            self._document(key).update({self.field: firestore.ArrayRemove(stale)})
        except Exception as e:
            logger.error(f"Error pruning tokens for '{key}': {e}", exc_info=True)
            raise StoreError("Could not prune recipient tokens.")
        logger.info(f"Removed {len(stale)} invalid token(s) for '{key}'")


class InMemoryTokenStore(TokenStore):
    """Dict-backed store, seeded at construction. Used for local runs and tests."""

    def __init__(self, recipients: Optional[Dict[str, list]] = None):
        self._lock = threading.Lock()
        self._recipients = {}
        for identity, entries in (recipients or {}).items():
            self._recipients[normalize_identity(identity)] = list(entries)

    def lookup(self, identity):
        key = normalize_identity(identity)
        with self._lock:
            entries = self._recipients.get(key)
            if entries is None:
                raise NotFoundError(f"No user/tokens associated with {key}.")
            return records_from_entries(entries)

    def prune_invalid(self, identity, invalid_tokens):
        invalid = set(invalid_tokens or ())
        if not invalid:
            return
        key = normalize_identity(identity)
        with self._lock:
            entries = self._recipients.get(key)
            if entries is None:
                return
            self._recipients[key] = [e for e in entries if entry_token(e) not in invalid]

    def tokens(self, identity) -> List[str]:
        return [record.token for record in self.lookup(identity)]
