"""
Shared helpers: JSON logging setup and the request/result dataclasses used
across thumbcache.
"""
