"""
Shared Infrastructure
=====================

Logging setup and metrics export.
"""
