"""Infrastructure layer — workspace loading and lifecycle.

Bridges the FileItem collection on disk to the engine: owns the snapshot
cache, the layout engine (and its pin cache), and the plugin manager.
"""
