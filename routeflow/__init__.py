"""
ROUTEFLOW - visual request-pipeline editor.

Each API route owns a small directed graph of typed steps (auth, url binding,
database operations, logic, output). This package holds the graph model, the
node type schemas and the autosave protocol that keeps the working copy in
sync with per-route storage.
"""

__version__ = "0.3.0"
