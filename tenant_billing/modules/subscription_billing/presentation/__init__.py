"""
Subscription billing presentation layer.
"""
