import logging

import firebase_admin
from firebase_admin import credentials


def _certificate_from_config(config):
    credentials_file = config.get('FIREBASE_CREDENTIALS_FILE')
    if credentials_file:
        return credentials.Certificate(credentials_file)

    private_key = config.get('FIREBASE_PRIVATE_KEY')
    if not private_key:
        logging.warning("FIREBASE_PRIVATE_KEY environment variable not set.")
        return None

    cred_dict = {
        "type": config.get("FIREBASE_TYPE", "service_account"),
        "project_id": config.get("FIREBASE_PROJECT_ID"),
        "private_key_id": config.get("FIREBASE_PRIVATE_KEY_ID"),
        # .env files usually carry the PEM with escaped newlines
        "private_key": private_key.replace('\\n', '\n'),
        "client_email": config.get("FIREBASE_CLIENT_EMAIL"),
        "client_id": config.get("FIREBASE_CLIENT_ID"),
        "auth_uri": config.get("FIREBASE_AUTH_URI"),
        "token_uri": config.get("FIREBASE_TOKEN_URI"),
        "auth_provider_x509_cert_url": config.get("FIREBASE_AUTH_PROVIDER_CERT_URL"),
        "client_x509_cert_url": config.get("FIREBASE_CLIENT_CERT_URL"),
        "universe_domain": config.get("FIREBASE_UNIVERSE_DOMAIN")
    }
    return credentials.Certificate(cred_dict)


def initialize_firebase(config):
    """Initialize the default Firebase app once. Returns True when an app is available."""
    if firebase_admin._apps:
        return True

    try:
        cred = _certificate_from_config(config)
    except (ValueError, IOError) as e:
        logging.error(f"Invalid Firebase credentials: {e}", exc_info=True)
        return False

    if cred is None:
        return False

    firebase_admin.initialize_app(cred)
    logging.info("Firebase initialized successfully")
    return True
