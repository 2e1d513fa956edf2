"""
REST API for the fleet renewal service.
"""
