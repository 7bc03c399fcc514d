import logging
import traceback

from flask import Flask, jsonify, request
from flask_limiter.errors import RateLimitExceeded
from werkzeug.exceptions import HTTPException, MethodNotAllowed

from fleetnotify.api.traccar_event import traccar_event_bp
from fleetnotify.config import get_config
from fleetnotify.extensions import init_extensions
from fleetnotify.services.factory import init_services
from fleetnotify.utils.logging_config import configure_logging
from fleetnotify.utils.request_logger import RequestLogger

logger = logging.getLogger(__name__)


def register_error_handlers(app):
    @app.errorhandler(400)
    def bad_request(error):
        logger.error(f"400 Bad Request for {request.method} {request.url}")
        return jsonify({'error': 'Bad Request', 'message': error.description, 'path': request.path}), 400

    @app.errorhandler(404)
    def not_found(error):
        logger.error(f"404 error for path: {request.path}")
        if request.path.startswith('/api/'):
            return jsonify({'error': 'API endpoint not found', 'path': request.path}), 404
        return jsonify({'error': 'Page not found', 'path': request.path}), 404

    @app.errorhandler(MethodNotAllowed)
    def method_not_allowed(error):
        logger.warning(f"405 Method {request.method} not allowed for {request.path}")
        response = jsonify({'error': f'Method {request.method} Not Allowed'})
        response.status_code = 405
        response.headers['Allow'] = ', '.join(sorted(error.valid_methods or []))
        return response

    @app.errorhandler(RateLimitExceeded)
    def ratelimit_handler(e):
        logger.warning(f"Rate limit exceeded for {request.method} {request.url}")
        return jsonify({'error': 'Rate limit exceeded. Please try again later.'}), 429

    @app.errorhandler(Exception)
    def handle_exception(e):
        if isinstance(e, HTTPException):
            return jsonify({'error': e.name}), e.code
        logger.error(f"Unhandled exception for {request.method} {request.url}: {e}")
        logger.error(traceback.format_exc())
        return jsonify({'error': 'Internal server error'}), 500


def create_app(config_object=None, token_store=None, dispatcher=None):
    """
    Build the Flask app.

    token_store / dispatcher replace the Firestore and FCM implementations;
    when omitted those are created lazily on the first webhook call.
    """
    app = Flask(__name__)
    app.config.from_object(config_object or get_config())

    configure_logging(app.config)
    init_extensions(app)
    init_services(app, token_store=token_store, dispatcher=dispatcher)
    RequestLogger.init_app(app)

    app.register_blueprint(traccar_event_bp, url_prefix='/api')
    logger.info("Registered blueprint: traccar_event with prefix: /api")

    @app.route('/')
    def root():
        return {'status': 'ok', 'message': 'fleetnotify is running. Webhook: POST /api/traccar-event'}

    @app.route('/api/health-check')
    def health_check():
        return {'status': 'ok'}

    register_error_handlers(app)
    return app


if __name__ == '__main__':
    app = create_app()
    app.run(host=app.config['FLASK_HOST'], port=app.config['FLASK_PORT'], debug=app.config.get('DEBUG', False))
