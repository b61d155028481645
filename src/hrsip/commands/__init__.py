"""
Command package.

Submodules are imported explicitly by hrsip.cli to avoid circular imports.
Do NOT import submodules here.
"""
__all__ = [
    "groups",
    "run",
    "summarize",
]
