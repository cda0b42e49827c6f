"""
storage — Attachment blob storage.

Provides:
  • ``BlobStore`` interface with database and filesystem backends
  • Namespaced attachment keys (``user-<id>/…``, ``list-<id>/…``)
"""
