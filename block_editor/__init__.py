"""Block editor application layer built on `blockkit`.

Common entrypoints:

- `block_editor.library`: the bundled core block types and the process-wide registry
- `block_editor.framework.session`: the editing session façade over tree/validator/renderer
- `block_editor.cli`: command line entrypoint
"""
