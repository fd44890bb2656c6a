# API/routes/status.py
# ============================================================================
# Health check
# ============================================================================

from datetime import datetime

from flask import Blueprint, current_app, jsonify

from Utils.systems import system_names

status_bp = Blueprint('status', __name__)


@status_bp.route('/status', methods=['GET'])
def api_status():
    return jsonify({
        'status': 'ok',
        'systems': system_names(current_app.config['SYSTEMS']),
        'timestamp': datetime.now().isoformat()
    }), 200
