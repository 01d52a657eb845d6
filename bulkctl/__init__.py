"""Confirmable, cancellable bulk operations against a remote device."""

__version__ = "0.1.0"
