"""
Subscription billing application layer: sweep scheduling and plan change commands.
"""
