# API/routes/whitelist.py
# ============================================================================
# Plain-text allow-list retrieval for game servers
# ============================================================================

import logging

from flask import Blueprint, Response, current_app

from Utils.systems import find_system

logger = logging.getLogger(__name__)

whitelist_bp = Blueprint('whitelist', __name__)


@whitelist_bp.route('/whitelist/<path:system_name>', methods=['GET'])
def get_whitelist(system_name: str):
    system = find_system(system_name, current_app.config['SYSTEMS'])
    if not system:
        return Response("No such system", status=404, mimetype='text/plain')

    allowlists = current_app.config['ALLOWLISTS']
    if not allowlists.exists(system):
        return Response("Whitelist file not found", status=404, mimetype='text/plain')

    try:
        entries = allowlists.read(system)
    except (OSError, ValueError) as e:
        logger.error(f"Failed to read allow-list for {system.name}: {e}", exc_info=True)
        return Response("Failed to read whitelist", status=500, mimetype='text/plain')

    return Response("\n".join(entries), status=200, mimetype='text/plain')
