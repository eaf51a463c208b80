"""
Subscription billing domain layer.
"""
