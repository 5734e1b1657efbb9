"""
API package containing versioned routes and request dependencies.

``deps`` resolves the store handle and the service objects for route
handlers; versioned routers live in subpackages such as ``v1``.
"""
