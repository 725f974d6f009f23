"""
Core application modules.
Contains configuration, logging, metrics, tracing, caching and middleware.
"""
