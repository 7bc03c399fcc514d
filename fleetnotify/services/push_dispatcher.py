import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

from firebase_admin import exceptions, messaging

from fleetnotify.models.notification import (
    BatchResult,
    DeliveryErrorKind,
    DeliveryOutcome,
    NotificationContent,
)
from fleetnotify.services.errors import GatewayError

logger = logging.getLogger(__name__)

# FCM rejects multicast messages addressing more tokens than this
MAX_MULTICAST_TOKENS = 500


def classify_error(error) -> DeliveryErrorKind:
    """Map an FCM send exception onto a DeliveryErrorKind."""
    if isinstance(error, messaging.UnregisteredError):
        return DeliveryErrorKind.UNREGISTERED
    if isinstance(error, messaging.SenderIdMismatchError):
        return DeliveryErrorKind.SENDER_ID_MISMATCH
    if isinstance(error, exceptions.InvalidArgumentError):
        # INVALID_ARGUMENT also covers payload problems; only a bad token is permanent
        if 'token' in str(error).lower():
            return DeliveryErrorKind.INVALID_TOKEN
        return DeliveryErrorKind.UNKNOWN
    if isinstance(error, messaging.QuotaExceededError):
        return DeliveryErrorKind.QUOTA_EXCEEDED
    if isinstance(error, exceptions.UnavailableError):
        return DeliveryErrorKind.UNAVAILABLE
    if isinstance(error, exceptions.InternalError):
        return DeliveryErrorKind.INTERNAL
    return DeliveryErrorKind.UNKNOWN


def stringify_data(metadata: Optional[Dict[str, Any]]) -> Dict[str, str]:
    """FCM data payloads only carry strings; None values are dropped."""
    return {str(key): str(value) for key, value in (metadata or {}).items() if value is not None}


class PushDispatcher(ABC):
    @abstractmethod
    def send_batch(self, tokens: Sequence[str], content: NotificationContent,
                   metadata: Optional[Dict[str, Any]] = None) -> BatchResult:
        """Send content to every token. Returns one outcome per token, in order."""
        pass


class FirebasePushDispatcher(PushDispatcher):
    def __init__(self, app=None, android_channel_id='high_importance_channel',
                 android_click_action='FLUTTER_NOTIFICATION_CLICK', webpush_base_url=None,
                 webpush_icon='/icon-192x192.png', webpush_badge='/icon-64x64.png'):
        self.app = app
        self.android_channel_id = android_channel_id
        self.android_click_action = android_click_action
        self.webpush_base_url = webpush_base_url.rstrip('/') if webpush_base_url else None
        self.webpush_icon = webpush_icon
        self.webpush_badge = webpush_badge

    @classmethod
    def from_config(cls, config, app=None):
        return cls(
            app=app,
            android_channel_id=config.get('ANDROID_CHANNEL_ID', 'high_importance_channel'),
            android_click_action=config.get('ANDROID_CLICK_ACTION', 'FLUTTER_NOTIFICATION_CLICK'),
            webpush_base_url=config.get('WEBPUSH_BASE_URL'),
            webpush_icon=config.get('WEBPUSH_ICON', '/icon-192x192.png'),
            webpush_badge=config.get('WEBPUSH_BADGE', '/icon-64x64.png'),
        )

    def _webpush_config(self, data):
        fcm_options = None
        device_id = data.get('deviceId')
        if self.webpush_base_url and device_id:
            fcm_options = messaging.WebpushFCMOptions(link=f"{self.webpush_base_url}/device/{device_id}")
        return messaging.WebpushConfig(
            notification=messaging.WebpushNotification(
                icon=self.webpush_icon,
                badge=self.webpush_badge,
                vibrate=[200, 100, 200],
            ),
            fcm_options=fcm_options,
        )

    def build_message(self, tokens, content, data):
        return messaging.MulticastMessage(
            tokens=list(tokens),
            notification=messaging.Notification(title=content.title, body=content.body),
            data=data,
            android=messaging.AndroidConfig(
                priority='high',
                notification=messaging.AndroidNotification(
                    channel_id=self.android_channel_id,
                    click_action=self.android_click_action,
                ),
            ),
            apns=messaging.APNSConfig(
                headers={'apns-priority': '10'},
                payload=messaging.APNSPayload(aps=messaging.Aps(sound='default', badge=1)),
            ),
            webpush=self._webpush_config(data),
        )

    def _send_chunk(self, tokens, content, data) -> List[DeliveryOutcome]:
        message = self.build_message(tokens, content, data)
        try:
            response = messaging.send_each_for_multicast(message, app=self.app)
        except Exception as e:
            logger.error(f"FCM multicast send failed for {len(tokens)} token(s): {e}", exc_info=True)
            raise GatewayError("Could not send push notification.")

        responses = list(response.responses)
        if len(responses) != len(tokens):
            logger.error(f"FCM returned {len(responses)} responses for {len(tokens)} tokens")
            raise GatewayError("Push gateway returned a mismatched response.")

        outcomes = []
        for token, send_response in zip(tokens, responses):
            if send_response.success:
                outcomes.append(DeliveryOutcome(token=token, success=True))
                continue
            kind = classify_error(send_response.exception)
            logger.warning(f"FCM delivery failed ({kind.value}) for token {token[:12]}...: "
                           f"{send_response.exception}")
            outcomes.append(DeliveryOutcome(token=token, success=False, error_kind=kind))
        return outcomes

    def send_batch(self, tokens, content, metadata=None):
        tokens = list(tokens)
        if not tokens:
            return BatchResult()

        data = stringify_data(metadata)
        outcomes = []
        for start in range(0, len(tokens), MAX_MULTICAST_TOKENS):
            chunk = tokens[start:start + MAX_MULTICAST_TOKENS]
            outcomes.extend(self._send_chunk(chunk, content, data))

        result = BatchResult.from_outcomes(outcomes)
        logger.info(f"FCM multicast: {result.success_count} sent, {result.failure_count} failed")
        return result
