"""
Business modules of the tenant billing service.
"""
