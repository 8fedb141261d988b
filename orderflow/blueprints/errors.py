from flask import jsonify
from orderflow.services.errors import ServiceError
import logging

logger = logging.getLogger(__name__)


def register_error_handlers(app):

    @app.errorhandler(ServiceError)
    def handle_service_error(error):
        if error.status_code >= 500:
            logger.error("Service error: %s", error.message)
        else:
            logger.warning(
                "Request rejected (%s): %s",
                error.status_code,
                error.message)
        return jsonify({'error': error.message}), error.status_code
