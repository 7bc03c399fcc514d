"""
Event ingestion: the pipeline behind the Traccar webhook.

    Received -> Validated -> TokensResolved -> Dispatched -> Completed

Validation problems and unknown recipients end in Rejected (400 / 404);
store or gateway failures during lookup or dispatch end in Failed (500).
Replayed events are dispatched again; there is no deduplication here.
"""
import logging
from enum import Enum

from pydantic import BaseModel

from fleetnotify.models.device_event import DeviceEvent
from fleetnotify.services.errors import (
    ClientInputError,
    InternalError,
    NotFoundError,
    ServiceError,
)
from fleetnotify.services.message_composer import MessageComposer
from fleetnotify.services.token_store import is_valid_identity_key, normalize_identity

logger = logging.getLogger(__name__)


class IngestState(str, Enum):
    RECEIVED = "received"
    VALIDATED = "validated"
    TOKENS_RESOLVED = "tokens_resolved"
    DISPATCHED = "dispatched"
    COMPLETED = "completed"
    REJECTED = "rejected"
    FAILED = "failed"


class IngestResult(BaseModel):
    """
    Counts for a completed dispatch. Only returned on success, so ``state`` is
    always COMPLETED; rejected and failed runs surface as ServiceError instead.
    """
    sent: int = 0
    failed: int = 0
    invalid_removed: int = 0
    state: IngestState = IngestState.COMPLETED

    def to_response(self):
        return {
            'success': True,
            'message': 'Event processing completed.',
            'sent': self.sent,
            'failed': self.failed,
            'invalidRemoved': self.invalid_removed,
        }


class EventIngestService:
    def __init__(self, token_store, dispatcher, composer=None):
        self.token_store = token_store
        self.dispatcher = dispatcher
        self.composer = composer or MessageComposer()

    @staticmethod
    def validate(identity, event):
        if event is None:
            raise ClientInputError("Invalid or malformed event data.")
        if event.device_id is None or not str(event.device_id).strip():
            raise ClientInputError("Invalid or malformed event data.", {'deviceId': ['Missing data for required field.']})
        if not event.type or not event.type.strip():
            raise ClientInputError("Invalid or malformed event data.", {'type': ['Missing data for required field.']})
        key = normalize_identity(identity)
        if not key:
            raise ClientInputError("No user identity provided for notification.",
                                   {'identity': ['Missing data for required field.']})
        if not is_valid_identity_key(key):
            raise ClientInputError("Invalid user identity.",
                                   {'identity': ['Identity cannot contain "/" or be a reserved name.']})
        return key

    def _transition(self, key, event, state):
        logger.debug(f"[{key}] event {event.id} type={event.type} device={event.device_id} -> {state.value}")

    def ingest(self, identity, event: DeviceEvent) -> IngestResult:
        try:
            key = self.validate(identity, event)
        except ClientInputError:
            logger.info(f"Rejected event for device {getattr(event, 'device_id', None)}: invalid input")
            raise
        self._transition(key, event, IngestState.VALIDATED)

        try:
            records = self.token_store.lookup(key)
            tokens = [record.token for record in records]
            if not tokens:
                logger.info(f"No valid FCM token found for user {key}")
                raise NotFoundError(f"No user/tokens associated with {key}.")
            self._transition(key, event, IngestState.TOKENS_RESOLVED)

            logger.info(f"Sending notification to {key} ({len(tokens)} tokens) for device {event.device_id}")
            content = self.composer.compose(event)
            result = self.dispatcher.send_batch(tokens, content, event.delivery_data())
            self._transition(key, event, IngestState.DISPATCHED)
        except NotFoundError:
            self._transition(key, event, IngestState.REJECTED)
            raise
        except ServiceError as e:
            logger.error(f"[{key}] event processing failed: {e.message}")
            self._transition(key, event, IngestState.FAILED)
            raise InternalError()
        except Exception as e:
            logger.error(f"[{key}] unexpected error processing event: {e}", exc_info=True)
            self._transition(key, event, IngestState.FAILED)
            raise InternalError()

        invalid_removed = self._prune(key, tokens, result)
        self._transition(key, event, IngestState.COMPLETED)
        return IngestResult(
            sent=result.success_count,
            failed=result.failure_count,
            invalid_removed=invalid_removed,
        )

    def _prune(self, key, tokens, result):
        # outcomes are index-aligned with the tokens we sent
        invalid = {
            token for token, outcome in zip(tokens, result.outcomes)
            if outcome.permanently_invalid
        }
        if not invalid:
            return 0
        logger.info(f"Found {len(invalid)} invalid token(s) for {key}")
        try:
            self.token_store.prune_invalid(key, invalid)
        except Exception as e:
            # Delivery already happened; a failed cleanup is retried on the next event
            logger.error(f"Failed to prune invalid tokens for {key}: {e}", exc_info=True)
            return 0
        return len(invalid)
