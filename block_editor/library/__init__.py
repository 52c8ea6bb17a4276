"""Bundled core block types.

Each module exports its descriptors through `__all_blocks__`; the process-wide
registry is assembled in `block_editor.library.registry`.
"""
