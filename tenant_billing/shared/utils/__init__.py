"""
Shared utilities (structured logging).
"""
