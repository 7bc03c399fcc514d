import logging
import os

LOG_FORMAT = '%(asctime)s %(levelname)s %(name)s: %(message)s'


def configure_logging(config):
    """Root logging: stream handler always, plus logs/app.log unless LOG_TO_FILE is off."""
    handlers = [logging.StreamHandler()]

    if config.get('LOG_TO_FILE', True):
        logs_dir = config.get('LOGS_DIR')
        try:
            os.makedirs(logs_dir, exist_ok=True)
            handlers.append(logging.FileHandler(os.path.join(logs_dir, 'app.log')))
        except OSError as e:
            logging.getLogger(__name__).error(f"Could not create log directory {logs_dir}: {e}")

    logging.basicConfig(
        level=getattr(logging, str(config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )
    # google clients are chatty at DEBUG
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger('google').setLevel(logging.WARNING)
