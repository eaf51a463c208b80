"""
HTTP API for subscription billing.
"""
