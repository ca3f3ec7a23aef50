"""
Domain layer - source documents, compiled calendar, and shared enums.

This layer contains the pure data model of the compiler,
independent of the filesystem and of any output format.
"""
