# API/routes/payhip.py
# ============================================================================
# Payhip purchase webhook
# ============================================================================

import logging
import time

from flask import Blueprint, current_app, request

from Utils.payhip import signature_matches
from Utils.pending import PendingGrant
from Utils.systems import find_system

logger = logging.getLogger(__name__)

payhip_bp = Blueprint('payhip', __name__)


@payhip_bp.route('/payhip-webhook', methods=['POST'])
def payhip_webhook():
    """Record each paid line item as a redeemable key"""
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        return "Malformed payload", 400

    if not signature_matches(body.get('signature'), current_app.config['PAYHIP_API_KEY']):
        logger.warning("Invalid Payhip signature")
        return "Invalid signature", 400

    if body.get('type') != 'paid':
        return "Ignored non-paid event", 200

    items = body.get('items')
    if not isinstance(items, list):
        return "Malformed payload", 400

    now = int(time.time() * 1000)
    grants = {}
    for item in items:
        if not isinstance(item, dict) or not item.get('product_key'):
            logger.warning(f"Skipping malformed webhook item: {item!r}")
            continue

        system = find_system(item.get('product_name'), current_app.config['SYSTEMS'])
        if not system:
            logger.warning(f"Skipping item for unknown product {item.get('product_name')!r}")
            continue

        grants[str(item['product_key'])] = PendingGrant(
            email=body.get('email'),
            system=system.name,
            timestamp=now,
        )

    current_app.config['LEDGER'].add_many(grants)
    return "OK", 200
