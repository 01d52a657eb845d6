"""Application composition layer for the bulkctl command line front end.

Modules in this package wire view models, adapters, confirmation gates and use
cases into runnable workflows without placing business logic in the front end.
"""
