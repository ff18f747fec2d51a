"""
Use cases built on top of the core primitives.

Services orchestrate repositories/adapters (file storage, image processing,
JWT cookies) so that routers stay thin.
"""
