# API/utils/errors.py
# ============================================================================
# Error handlers for the HTTP API
# ============================================================================

import logging

from flask import jsonify

logger = logging.getLogger(__name__)


def register_error_handlers(app):
    """Register error handlers for the Flask app"""

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({
            'error': 'Not found',
            'message': 'The requested endpoint does not exist',
            'code': 'HTTP_404'
        }), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({
            'error': 'Method not allowed',
            'message': str(error),
            'code': 'HTTP_405'
        }), 405

    @app.errorhandler(500)
    def internal_error(error):
        logger.error(f"Unhandled API error: {error}")
        return jsonify({
            'error': 'Internal server error',
            'message': 'An unexpected error occurred',
            'code': 'HTTP_500'
        }), 500

    @app.errorhandler(400)
    def bad_request(error):
        return jsonify({
            'error': 'Bad request',
            'message': str(error),
            'code': 'HTTP_400'
        }), 400
