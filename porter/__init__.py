"""
Porter

Migrates community data between relational schemas.

Supports:
- Platform-specific source exports into a canonical intermediate schema
- Column renaming, type coercion and filter chains per entity
- Streaming extraction with batched writes
- Destination tables synthesized from type descriptors
- Database or flat-file (CSV) output
- Optional import into a target platform with post-import finalization
"""

__version__ = "0.1.0"
