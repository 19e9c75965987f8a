"""
Shared Kernel Module
====================

Generic infrastructure used by the triage bounded context: structured
logging, metrics export and HTTP middleware.

DO NOT add triage business logic to the shared kernel.
"""
