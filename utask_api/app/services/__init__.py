"""
Service layer abstraction.

Each service encapsulates business logic for a domain and receives the
``Database`` handle it works on.  Services raise the exceptions from
``core.errors`` and never build HTTP responses themselves.
"""
