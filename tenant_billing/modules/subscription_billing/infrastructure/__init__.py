"""
Infrastructure adapters for subscription billing.
"""
