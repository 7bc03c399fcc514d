"""
Request logging with timing and process memory metrics
"""
import json
import logging
import time
from datetime import datetime, timezone

import psutil
from flask import g, request

logger = logging.getLogger(__name__)


class RequestLogger:
    """Per-request log line with duration and memory delta"""

    @staticmethod
    def before_request():
        g.start_time = time.time()
        g.request_id = f"{int(time.time() * 1000000)}"  # Microsecond precision
        try:
            g.initial_memory = psutil.Process().memory_info().rss
        except psutil.Error as e:
            logger.debug(f"Could not collect initial process metrics: {e}")
            g.initial_memory = 0

    @staticmethod
    def after_request(response):
        if not hasattr(g, 'start_time'):
            return response

        duration_ms = (time.time() - g.start_time) * 1000

        memory_diff = 0
        if getattr(g, 'initial_memory', 0) > 0:
            try:
                memory_diff = psutil.Process().memory_info().rss - g.initial_memory
            except psutil.Error as e:
                logger.debug(f"Could not collect final process metrics: {e}")

        log_data = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'request_id': getattr(g, 'request_id', 'unknown'),
            'method': request.method,
            'path': request.path,
            'endpoint': request.endpoint,
            'remote_addr': request.remote_addr,
            'content_length': request.content_length,
            'duration_ms': round(duration_ms, 2),
            'status_code': response.status_code,
            'memory_delta_mb': round(memory_diff / (1024 * 1024), 3) if memory_diff > 0 else 0,
        }

        log_level = logging.INFO
        if response.status_code >= 500:
            log_level = logging.ERROR
        elif response.status_code >= 400:
            log_level = logging.WARNING

        logger.log(log_level, f"REQUEST_LOG: {json.dumps(log_data)}")
        return response

    @classmethod
    def init_app(cls, app):
        app.before_request(cls.before_request)
        app.after_request(cls.after_request)
