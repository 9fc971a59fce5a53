"""
Writing generated modules to disk.
"""

from __future__ import annotations

from .atomic_writer import AtomicWriter

__all__ = [
    "AtomicWriter",
]
