"""Project-specific framework utilities.

- `block_editor.framework.config`: strict parsing of the YAML editor config
- `block_editor.framework.session`: editing session over a composition tree

For reusable, project-agnostic composition primitives, use `blockkit`.
"""
