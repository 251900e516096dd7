"""
Gift Card Relay Schemas
"""
