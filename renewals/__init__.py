"""
Renewals module - renewal requests, quotes and bulk renewals.

This module handles:
- RenewalRequest entity and its one-way lifecycle
- Quote pricing and write-once quote artifacts
- Bulk renewal receipts keyed by payment token
- Payment gateway and document renderer adapters
"""
