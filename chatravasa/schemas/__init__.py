"""
HTTP request/response schemas
"""
