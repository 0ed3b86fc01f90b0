"""Kernel utilities."""

from lekka_kernel.utils.hashing import canonical_json, hash_payload

__all__ = ["canonical_json", "hash_payload"]
