from types import SimpleNamespace

import pytest
from firebase_admin import exceptions, messaging

from fleetnotify.models.notification import DeliveryErrorKind, NotificationContent
from fleetnotify.services.errors import GatewayError
from fleetnotify.services.push_dispatcher import (
    MAX_MULTICAST_TOKENS,
    FirebasePushDispatcher,
    classify_error,
    stringify_data,
)

CONTENT = NotificationContent(title='Device Offline', body='Truck-7 is offline')


def ok():
    return SimpleNamespace(success=True, exception=None, message_id='projects/p/messages/1')


def failed(error):
    return SimpleNamespace(success=False, exception=error, message_id=None)


class FakeFCM:
    """Stands in for messaging.send_each_for_multicast."""

    def __init__(self, failures=None, error=None):
        self.failures = failures or {}
        self.error = error
        self.messages = []

    def __call__(self, message, dry_run=False, app=None):
        self.messages.append(message)
        if self.error is not None:
            raise self.error
        responses = [failed(self.failures[t]) if t in self.failures else ok() for t in message.tokens]
        return SimpleNamespace(responses=responses)


@pytest.fixture
def fcm(monkeypatch):
    fake = FakeFCM()
    monkeypatch.setattr(messaging, 'send_each_for_multicast', fake)
    return fake


class TestClassifyError:

    def test_unregistered_is_permanent(self):
        kind = classify_error(messaging.UnregisteredError('Requested entity was not found.'))
        assert kind == DeliveryErrorKind.UNREGISTERED
        assert kind.is_permanent

    def test_invalid_token_is_permanent(self):
        error = exceptions.InvalidArgumentError('The registration token is not a valid FCM registration token')
        assert classify_error(error) == DeliveryErrorKind.INVALID_TOKEN

    def test_invalid_payload_is_not_permanent(self):
        error = exceptions.InvalidArgumentError('Invalid JSON payload received.')
        assert not classify_error(error).is_permanent

    def test_sender_mismatch_is_permanent(self):
        assert classify_error(messaging.SenderIdMismatchError('mismatch')).is_permanent

    @pytest.mark.parametrize('error, kind', [
        (messaging.QuotaExceededError('quota'), DeliveryErrorKind.QUOTA_EXCEEDED),
        (exceptions.UnavailableError('unavailable'), DeliveryErrorKind.UNAVAILABLE),
        (exceptions.InternalError('internal'), DeliveryErrorKind.INTERNAL),
        (ValueError('boom'), DeliveryErrorKind.UNKNOWN),
        (None, DeliveryErrorKind.UNKNOWN),
    ])
    def test_transient_kinds(self, error, kind):
        assert classify_error(error) == kind
        assert not kind.is_permanent


class TestFirebasePushDispatcher:

    def test_outcomes_follow_input_order(self, fcm):
        fcm.failures = {'t2': messaging.UnregisteredError('gone')}
        result = FirebasePushDispatcher().send_batch(['t1', 't2', 't3'], CONTENT, {'deviceId': 42})

        assert [o.token for o in result.outcomes] == ['t1', 't2', 't3']
        assert [o.success for o in result.outcomes] == [True, False, True]
        assert result.success_count == 2
        assert result.failure_count == 1
        assert result.outcomes[1].error_kind == DeliveryErrorKind.UNREGISTERED
        assert result.invalid_tokens() == ['t2']

    def test_transient_failure_is_reported_but_not_invalid(self, fcm):
        fcm.failures = {'t1': exceptions.UnavailableError('try later')}
        result = FirebasePushDispatcher().send_batch(['t1'], CONTENT)
        assert result.failure_count == 1
        assert result.invalid_tokens() == []

    def test_large_batches_are_chunked(self, fcm):
        tokens = [f"token-{i}" for i in range(MAX_MULTICAST_TOKENS * 2 + 1)]
        fcm.failures = {'token-700': messaging.UnregisteredError('gone')}

        result = FirebasePushDispatcher().send_batch(tokens, CONTENT)

        assert [len(m.tokens) for m in fcm.messages] == [500, 500, 1]
        assert len(result.outcomes) == len(tokens)
        assert [o.token for o in result.outcomes] == tokens
        assert result.invalid_tokens() == ['token-700']

    def test_empty_token_list_makes_no_call(self, fcm):
        result = FirebasePushDispatcher().send_batch([], CONTENT)
        assert result.outcomes == []
        assert fcm.messages == []

    def test_gateway_exception_raises_gateway_error(self, fcm):
        fcm.error = exceptions.UnavailableError('connection reset')
        with pytest.raises(GatewayError):
            FirebasePushDispatcher().send_batch(['t1'], CONTENT)

    def test_message_carries_notification_data_and_platform_hints(self, fcm):
        dispatcher = FirebasePushDispatcher(webpush_base_url='https://fleet.example.com/')
        dispatcher.send_batch(['t1'], CONTENT, {'deviceId': 42, 'type': 'deviceOffline', 'name': None})

        message = fcm.messages[0]
        assert message.notification.title == 'Device Offline'
        assert message.notification.body == 'Truck-7 is offline'
        assert message.data == {'deviceId': '42', 'type': 'deviceOffline'}
        assert message.android.priority == 'high'
        assert message.android.notification.channel_id == 'high_importance_channel'
        assert message.apns.headers == {'apns-priority': '10'}
        assert message.webpush.fcm_options.link == 'https://fleet.example.com/device/42'

    def test_no_webpush_link_without_base_url(self, fcm):
        FirebasePushDispatcher().send_batch(['t1'], CONTENT, {'deviceId': 42})
        assert fcm.messages[0].webpush.fcm_options is None


def test_stringify_data_drops_none():
    assert stringify_data({'a': 1, 'b': None, 'c': 'x'}) == {'a': '1', 'c': 'x'}
    assert stringify_data(None) == {}
