"""
============================================================================
Gift Card Relay v1.0.0
Signed issuance relay between internal callers and the Tillo digital API
============================================================================
"""

__version__ = "1.0.0"
