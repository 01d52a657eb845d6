"""HTTP device simulator with injectable faults (``GET /health``, ``POST /units``)."""
