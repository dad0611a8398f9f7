"""Core Business Components.

This package contains independent business modules:
- workspace: workspaces, registry, authoritative group storage
- smart_import: collection, filtering and classification pipeline
"""
