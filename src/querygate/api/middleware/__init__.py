"""API middleware package.

Cross-cutting concerns (request ids, caller identity, timing, error
mapping) live here so the registry router stays focused on dispatch.
"""
