"""
Feedhook Utilities
==================

Shared logging configuration and exception hierarchy.
"""
