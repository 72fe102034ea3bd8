"""
phonedir.sync - Directory synchronization

Domain model, dimension resolution and the per-source contact reconciler.
Import from the submodules directly (phonedir.sync.contact,
phonedir.sync.dimensions, phonedir.sync.reconciler).
"""
