"""
Route editor for ROUTEFLOW.

This package provides the editing session behind the flow editor page:
- EditorSession: graph store, resolver, autosave and drag state for one route
- EditorState: snapshot of the session for rendering
- panel: NiceGUI node configuration panel (imported by the app directly)

Usage:
    from routeflow.editor import EditorSession
    from routeflow.editor.panel import render_config_panel
"""

from routeflow.editor.controller import EditorSession, EditorState

__all__ = [
    'EditorSession',
    'EditorState',
]
