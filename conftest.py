import pytest

from fleetnotify.config import TestConfig
from fleetnotify.models.device_event import DeviceEvent
from fleetnotify.models.notification import BatchResult, DeliveryOutcome
from fleetnotify.server import create_app
from fleetnotify.services.errors import GatewayError, StoreError
from fleetnotify.services.push_dispatcher import PushDispatcher
from fleetnotify.services.token_store import InMemoryTokenStore


class FakeDispatcher(PushDispatcher):
    """Records calls; fails the tokens listed in ``failures`` with the given kind."""

    def __init__(self, failures=None, error=None):
        self.failures = failures or {}
        self.error = error
        self.calls = []

    def send_batch(self, tokens, content, metadata=None):
        self.calls.append({'tokens': list(tokens), 'content': content, 'metadata': metadata})
        if self.error is not None:
            raise self.error
        outcomes = []
        for token in tokens:
            kind = self.failures.get(token)
            outcomes.append(DeliveryOutcome(token=token, success=kind is None, error_kind=kind))
        return BatchResult.from_outcomes(outcomes)


class RecordingTokenStore(InMemoryTokenStore):
    """In-memory store that counts calls and can be told to fail."""

    def __init__(self, recipients=None, lookup_error=None, prune_error=None):
        super().__init__(recipients)
        self.lookup_error = lookup_error
        self.prune_error = prune_error
        self.lookups = []
        self.prunes = []

    def lookup(self, identity):
        self.lookups.append(identity)
        if self.lookup_error is not None:
            raise self.lookup_error
        return super().lookup(identity)

    def prune_invalid(self, identity, invalid_tokens):
        self.prunes.append((identity, set(invalid_tokens)))
        if self.prune_error is not None:
            raise self.prune_error
        return super().prune_invalid(identity, invalid_tokens)


@pytest.fixture
def token_store():
    return RecordingTokenStore({
        'user@example.com': [
            {'fcmToken': 'token-good', 'platform': 'android'},
            {'fcmToken': 'token-dead', 'platform': 'web'},
        ],
        'empty@example.com': [],
    })


@pytest.fixture
def dispatcher():
    return FakeDispatcher()


@pytest.fixture
def app(token_store, dispatcher):
    return create_app(TestConfig, token_store=token_store, dispatcher=dispatcher)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def offline_event():
    return DeviceEvent(id=1, device_id=42, name='Truck-7', type='deviceOffline')


@pytest.fixture
def store_error():
    return StoreError("firestore unavailable")


@pytest.fixture
def gateway_error():
    return GatewayError("fcm unavailable")
