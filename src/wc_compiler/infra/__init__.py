"""
Infrastructure layer - logging, settings, and the error taxonomy.

This layer contains technical concerns shared by every other layer.
"""
