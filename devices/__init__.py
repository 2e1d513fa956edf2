"""
Devices module - the licensed device fleet.

This module handles:
- Device entity and the status resolver
- Device registry and geocoder (ports)
- Device infrastructure (Django ORM adapter, HTTP geocoder)
- Device commands and fleet queries
"""
