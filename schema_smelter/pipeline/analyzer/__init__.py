"""
Analyzer module.

Contains reference resolution, namespace derivation, type mapping and
ModuleSpec building.
"""

from __future__ import annotations

from .analyzer import SchemaAnalyzer
from .ir_nodes import EnumDeclaration, FieldDescriptor, ModuleSpec
from .reference_resolver import ResolutionCache, ResolutionContext, Resolver
from .type_mapper import map_type

__all__ = [
    "EnumDeclaration",
    "FieldDescriptor",
    "ModuleSpec",
    "ResolutionCache",
    "ResolutionContext",
    "Resolver",
    "SchemaAnalyzer",
    "map_type",
]
