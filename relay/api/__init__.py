# ============================================================================
# Gift Card Relay v1.0.0
# API Routes Module
# ============================================================================

from relay.api.issuance import router as issuance_router

__all__ = ["issuance_router"]
