"""Use-case layer for bulk device workflows.

Each module coordinates domain objects and ports without performing transport
I/O directly.
"""
