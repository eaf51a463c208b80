"""
Shared infrastructure: database engine/session management and the outbound HTTP client.
"""
