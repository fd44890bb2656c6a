# ============================================================================
# LicenseKeeper - Whitelist Automation System
# Copyright © 2025 404ConnerNotFound. All Rights Reserved.
# ============================================================================

from flask import Flask
from flask_cors import CORS
import logging
import os
from dotenv import load_dotenv

from Utils.allowlist import AllowListStore
from Utils.pending import PendingLedger
from Utils.systems import SYSTEMS

load_dotenv()

logger = logging.getLogger(__name__)


def create_app(ledger: PendingLedger = None, allowlists: AllowListStore = None,
               api_key: str = None, systems=None):
    """Create and configure the Flask application"""
    app = Flask(__name__)
    app.config['JSON_AS_ASCII'] = False
    app.config['JSON_SORT_KEYS'] = False

    CORS(app, resources={
        r"/whitelist/*": {
            "origins": os.getenv("ALLOWED_ORIGINS", "*").split(","),
            "methods": ["GET"]
        }
    })

    data_dir = os.getenv('DATA_DIR', '.')
    app.config['LEDGER'] = ledger or PendingLedger(os.path.join(data_dir, 'pending_licenses.json'))
    app.config['ALLOWLISTS'] = allowlists or AllowListStore(data_dir)
    app.config['PAYHIP_API_KEY'] = api_key if api_key is not None else os.getenv('PAYHIP_API_KEY', '')
    app.config['SYSTEMS'] = systems if systems is not None else SYSTEMS

    from .routes import payhip_bp, whitelist_bp, status_bp

    app.register_blueprint(payhip_bp)
    app.register_blueprint(whitelist_bp)
    app.register_blueprint(status_bp)

    from .utils.errors import register_error_handlers
    register_error_handlers(app)

    if not app.config['PAYHIP_API_KEY']:
        logger.warning("PAYHIP_API_KEY is not set; every webhook will be rejected")

    logger.info("HTTP API initialized")
    return app


def run_api(host='0.0.0.0', port=None):
    """Run the API server"""
    app = create_app()
    port = port or int(os.getenv('API_PORT', 3000))
    debug = os.getenv('FLASK_ENV', 'production') == 'development'

    logger.info(f"Starting HTTP API on {host}:{port}")
    app.run(host=host, port=port, debug=debug, use_reloader=False)
