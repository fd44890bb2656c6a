# API/routes/__init__.py
# ============================================================================
# Import and expose all route blueprints
# ============================================================================

from .payhip import payhip_bp
from .whitelist import whitelist_bp
from .status import status_bp

__all__ = ['payhip_bp', 'whitelist_bp', 'status_bp']
