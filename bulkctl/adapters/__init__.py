"""Adapter package for external I/O implementations.

Purpose:
    Collect concrete implementations for domain ports (HTTP device connection,
    filesystem settings, and the fault-injecting device mock).

Dependencies:
    Individual submodules depend on ``requests``, filesystem APIs, and domain
    protocol definitions.

Call context:
    Imported by ``bulkctl.app.controller`` for runtime wiring and by tests.
"""
