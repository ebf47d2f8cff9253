"""Object storage for generated and reference audio."""
from voiso.storage.base import ObjectStorage, owner_segment, parse_storage_ref, storage_ref
from voiso.storage.local import LocalObjectStorage

__all__ = ["LocalObjectStorage", "ObjectStorage", "owner_segment", "parse_storage_ref", "storage_ref"]
