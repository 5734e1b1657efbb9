"""
Core infrastructure shared by every domain.

Configuration, logging, the SQLite store handle, authentication
helpers, permission predicates and the error hierarchy live here.
"""
