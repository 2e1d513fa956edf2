"""
Organizations module - the parent/child/reseller hierarchy.

This module handles:
- Organization variants (parent, child, reseller) and their invariants
- Organization repository (port)
- Organization infrastructure (Django ORM adapters, API keys)
"""
