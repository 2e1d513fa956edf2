"""
Authorization module - the renewal policy engine.

A pure decision function over organizations, devices and requests.
It has no models and is not a Django app.
"""
