import logging

from flask import Blueprint, current_app, jsonify, request
from marshmallow import ValidationError

from fleetnotify.schemas.event_schema import EventIngestRequestSchema
from fleetnotify.services.errors import ClientInputError, InternalError, ServiceError
from fleetnotify.services.factory import get_ingest_service
from fleetnotify.services.token_store import normalize_identity

traccar_event_bp = Blueprint('traccar_event', __name__)
schema = EventIngestRequestSchema()

logger = logging.getLogger(__name__)


def _error_response(error: ServiceError):
    body = {'error': error.message}
    details = getattr(error, 'details', None)
    if details:
        body['details'] = details
    return jsonify(body), error.code


@traccar_event_bp.route('/traccar-event', methods=['POST'])
def traccar_event():
    """
    Traccar event webhook.

    Body: {"identity": "<user e-mail>", "event": {...Traccar event...}}
    200 with delivery counts, 400 malformed, 404 no tokens, 500 internal.
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'error': 'Request body must be a JSON object.'}), 400

    try:
        payload = schema.load(data)
    except ValidationError as err:
        logger.info(f"Invalid event payload: {err.messages}")
        return _error_response(ClientInputError("Invalid or malformed event data.", err.messages))

    event = payload['event']
    identity = payload.get('identity')

    if not normalize_identity(identity) and current_app.config.get('ACCEPT_EVENTS_WITHOUT_IDENTITY'):
        # Acknowledge so Traccar does not keep re-sending an event we cannot route
        logger.info(f"Event for deviceId {event.device_id} without user identity. Ignoring.")
        return jsonify({
            'success': True,
            'dispatched': False,
            'message': 'Event received, but no user identity was provided for notification.',
        }), 200

    try:
        service = get_ingest_service(current_app)
        result = service.ingest(identity, event)
        return jsonify(result.to_response()), 200
    except ServiceError as se:
        return _error_response(se)
    except Exception as e:
        logging.error(f"Unhandled error in traccar_event: {e}", exc_info=True)
        return _error_response(InternalError())
