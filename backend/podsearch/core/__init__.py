"""
Core application modules.
Contains configuration, logging, metrics, caching and HTTP middleware.
"""
