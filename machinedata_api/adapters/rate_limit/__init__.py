"""Rate limiting adapters.

A small abstraction layer so the service starts with in-process counters and
can later move them to Redis or another shared store without changing the
HTTP layer.
"""
