"""`blockkit` invariants and boundaries.

This module exists to make repository-wide refactors and boundary tests explicit.

Generic invariants:

1) `blockkit` must not import `block_editor.*`.
2) `blockkit` provides the composition kernel: block descriptors and their
   registry, the parent allow-list validator, the composition tree, the dual
   edit/save render engine and the persisted delimiter format.
3) `blockkit` does not decide:
   - which block types exist (the application registers them)
   - whether capability flags such as `reusable` or `html` are enforced
     (features outside the kernel consult them)
   - where logs go or how configuration is loaded

Project code should inject these through the registry it builds and the
recorder/logger objects it passes to the engine.
"""
