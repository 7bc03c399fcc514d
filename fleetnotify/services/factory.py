import logging
import threading

from fleetnotify.firebase_client import initialize_firebase
from fleetnotify.services.errors import InternalError
from fleetnotify.services.event_ingest_service import EventIngestService
from fleetnotify.services.push_dispatcher import FirebasePushDispatcher
from fleetnotify.services.token_store import FirestoreTokenStore

logger = logging.getLogger(__name__)

EXTENSION_KEY = 'fleetnotify'
_build_lock = threading.Lock()


def init_services(app, token_store=None, dispatcher=None):
    """Register collaborators; anything not given is built from Firebase on first use."""
    app.extensions[EXTENSION_KEY] = {
        'token_store': token_store,
        'dispatcher': dispatcher,
        'ingest_service': None,
    }


def get_ingest_service(app) -> EventIngestService:
    state = app.extensions[EXTENSION_KEY]
    if state['ingest_service'] is not None:
        return state['ingest_service']

    with _build_lock:
        if state['ingest_service'] is None:
            token_store = state['token_store']
            dispatcher = state['dispatcher']
            if token_store is None or dispatcher is None:
                if not initialize_firebase(app.config):
                    logger.error("Firebase is not configured; cannot deliver notifications")
                    raise InternalError()
                token_store = token_store or FirestoreTokenStore.from_config(app.config)
                dispatcher = dispatcher or FirebasePushDispatcher.from_config(app.config)
            state['ingest_service'] = EventIngestService(token_store, dispatcher)
            logger.info(f"Event ingest service ready ({type(token_store).__name__}, {type(dispatcher).__name__})")
    return state['ingest_service']
