"""
Reference resolver for $ref and composition resolution.

Phase 2 of the pipeline. Walks a schema document and produces a new,
annotated tree:

- local references (``#/$defs/name``) are resolved recursively and inlined,
  the reference site's own keys winning over the target's;
- cross-file references (``other.json`` or ``other.json#/$defs/name``) are
  loaded through the resolution cache to check that they exist, then
  annotated with the derived module name of their target instead of being
  inlined, so every file becomes its own generated module;
- ``allOf`` branches are deep-merged in order, ``oneOf``/``anyOf`` branches
  are kept side by side.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ..config import CodeGeneratorConfig
from ..errors import CircularReferenceError, RefNotFoundError, ReferencedFileError, SchemaError
from ..loader import SchemaDocument, SchemaLoader
from . import namespace
from .json_pointer import is_missing, parse_ref, resolve_pointer

logger = logging.getLogger(__name__)

# Annotation keys added to resolved nodes
REF = "_ref"
REF_MODULE = "_ref_module"
REF_NAME = "_ref_name"
COMPOSITION = "_composition"
SOURCE_PATH = "_source_path"

ANNOTATION_KEYS = (REF, REF_MODULE, REF_NAME, COMPOSITION, SOURCE_PATH)

CacheKey = tuple[str, str | None]


class ResolutionCache:
    """Per-run memo of loaded documents and located reference targets.

    Keys are ``(absolute path, pointer)``; a ``None`` pointer holds the whole
    decoded document. One instance is owned by one resolution run.
    """

    def __init__(self):
        self._entries: dict[CacheKey, Any] = {}
        self.hits = 0
        self.misses = 0

    def get(self, path: str | Path, pointer: str | None) -> Any | None:
        key = (str(path), pointer)
        if key in self._entries:
            self.hits += 1
            logger.debug("Resolution cache hit for %s#%s", path, pointer or "")
            return self._entries[key]
        self.misses += 1
        return None

    def put(self, path: str | Path, pointer: str | None, node: Any) -> None:
        self._entries[(str(path), pointer)] = node

    def __contains__(self, key: CacheKey) -> bool:
        return (str(key[0]), key[1]) in self._entries

    def __len__(self) -> int:
        return len(self._entries)


@dataclass
class ResolutionContext:
    """State threaded through one top-level resolution run."""

    # File whose root document local pointers are resolved against
    schema_path: Path
    # File the run started from
    original_schema_path: Path
    # Root used to compute relative namespaces
    schemas_dir: Path
    module_prefix: str
    root_schema: dict[str, Any]
    cache: ResolutionCache
    # (path, pointer) of local references currently being resolved
    in_flight: list[CacheKey] = field(default_factory=list)


def deep_merge(base: Any, override: Any) -> Any:
    """
    Deep merge two schema fragments.

    Maps merge key by key (recursively), lists concatenate and any other
    value from ``override`` replaces the one in ``base``.
    """
    if not (isinstance(base, dict) and isinstance(override, dict)):
        return override

    merged = dict(base)
    for key, value in override.items():
        if key not in merged:
            merged[key] = value
            continue
        existing = merged[key]
        if isinstance(existing, dict) and isinstance(value, dict):
            merged[key] = deep_merge(existing, value)
        elif isinstance(existing, list) and isinstance(value, list):
            merged[key] = existing + value
        else:
            merged[key] = value
    return merged


def merge_all_of(branches: list[Any]) -> dict[str, Any]:
    """Merge resolved allOf branches in order, later branches winning."""
    merged: dict[str, Any] = {}
    for branch in branches:
        if isinstance(branch, dict):
            merged = deep_merge(merged, branch)
    return merged


def strip_annotations(node: Any) -> Any:
    """Return a copy of a resolved tree without resolver annotations."""
    if isinstance(node, dict):
        return {k: strip_annotations(v) for k, v in node.items() if k not in ANNOTATION_KEYS}
    if isinstance(node, list):
        return [strip_annotations(item) for item in node]
    return node


class Resolver:
    """Resolves references and compositions in a schema document."""

    def __init__(self, config: CodeGeneratorConfig | None = None, loader: SchemaLoader | None = None):
        """
        Initialize the resolver.

        Args:
            config: Compiler configuration (module prefix, schema root)
            loader: Loader used for referenced files
        """
        self.config = config or CodeGeneratorConfig()
        self.loader = loader or SchemaLoader()
        # Cache of the most recent run, kept for diagnostics
        self.cache = ResolutionCache()

    def resolve(self, schema: SchemaDocument | dict[str, Any], schema_path: str | Path | None = None) -> dict[str, Any]:
        """
        Resolve all references and compositions in a schema.

        Args:
            schema: A loaded document, or a decoded schema plus ``schema_path``
            schema_path: Path of the schema file (required for raw dicts)

        Returns:
            A new resolved tree annotated with ``_source_path``

        Raises:
            RefNotFoundError: A pointer does not resolve in its document
            ReferencedFileError: A referenced file cannot be loaded
            CircularReferenceError: Local references form a cycle
        """
        if isinstance(schema, SchemaDocument):
            content, path = schema.content, schema.path
        else:
            if schema_path is None:
                raise ValueError("schema_path is required when resolving a raw schema")
            content, path = schema, Path(schema_path).expanduser().resolve()

        schemas_dir = Path(self.config.schemas_dir).expanduser().resolve() if self.config.schemas_dir else namespace.detect_schemas_root(path)

        self.cache = ResolutionCache()
        self.cache.put(path, None, content)
        context = ResolutionContext(
            schema_path=path,
            original_schema_path=path,
            schemas_dir=schemas_dir,
            module_prefix=self.config.module_prefix,
            root_schema=content,
            cache=self.cache,
        )

        resolved = self._resolve_node(content, context)
        if isinstance(resolved, dict):
            resolved[SOURCE_PATH] = str(path)
        logger.debug("Resolved %s (%d cache entries, %d hits)", path, len(self.cache), self.cache.hits)
        return resolved

    def _resolve_node(self, node: Any, context: ResolutionContext) -> Any:
        """Resolve one schema node, returning a new node."""
        if not isinstance(node, dict):
            return node

        if isinstance(node.get("$ref"), str):
            return self._resolve_ref_site(node, context)

        resolved = dict(node)

        properties = node.get("properties")
        if isinstance(properties, dict):
            resolved["properties"] = {name: self._resolve_node(prop, context) for name, prop in properties.items()}

        for key in ("items", "additionalProperties"):
            if isinstance(node.get(key), dict):
                resolved[key] = self._resolve_node(node[key], context)

        composition = None
        for keyword, tag in (("anyOf", "any_of"), ("oneOf", "one_of")):
            if isinstance(node.get(keyword), list):
                branches = [self._resolve_node(branch, context) for branch in node[keyword]]
                resolved[keyword] = branches
                composition = (tag, branches)

        if isinstance(node.get("allOf"), list):
            branches = [self._resolve_node(branch, context) for branch in node["allOf"]]
            del resolved["allOf"]
            resolved = deep_merge(resolved, merge_all_of(branches))
            composition = ("all_of", branches)

        if composition is not None:
            resolved[COMPOSITION] = composition
        return resolved

    def _resolve_ref_site(self, node: dict[str, Any], context: ResolutionContext) -> dict[str, Any]:
        ref = node["$ref"]
        file_part, pointer = parse_ref(ref)

        if not file_part:
            target = self._resolve_local_ref(ref, pointer or "", context)
            site = {k: v for k, v in node.items() if k != "$ref"}
            site_resolved = self._resolve_node(site, context) if site else {}

            merged = dict(target) if isinstance(target, dict) else {}
            merged.update(site_resolved)
            merged[REF] = ref
            merged[REF_NAME] = namespace.module_name(context.schema_path, context.schemas_dir, context.module_prefix, pointer)
            return merged

        target_path = (context.schema_path.parent / file_part).resolve()
        self._locate_file_ref(ref, target_path, pointer, context)

        annotated = dict(node)
        annotated[REF] = ref
        annotated[REF_MODULE] = namespace.module_name(target_path, context.schemas_dir, context.module_prefix, pointer)
        return annotated

    def _resolve_local_ref(self, ref: str, pointer: str, context: ResolutionContext) -> Any:
        """Resolve a pointer against the root document of the current file."""
        key = (str(context.schema_path), pointer)
        if key in context.in_flight:
            chain = [*context.in_flight, key]
            trail = " -> ".join(f"#{p}" for _, p in chain)
            raise CircularReferenceError(
                f"Circular $ref {ref} in {context.schema_path}: {trail}",
                chain=chain,
                path=context.schema_path,
                ref=ref,
            )

        target = resolve_pointer(context.root_schema, pointer)
        if is_missing(target):
            raise RefNotFoundError(f"$ref {ref} not found in {context.schema_path}", path=context.schema_path, ref=ref)

        context.in_flight.append(key)
        try:
            return self._resolve_node(target, context)
        finally:
            context.in_flight.pop()

    def _locate_file_ref(self, ref: str, target_path: Path, pointer: str | None, context: ResolutionContext) -> Any:
        """Load (through the cache) the target of a cross-file reference."""
        target = context.cache.get(target_path, pointer)
        if target is not None:
            return target

        document = context.cache.get(target_path, None)
        if document is None:
            try:
                document = self.loader.load(target_path).content
            except (SchemaError, OSError) as e:
                raise ReferencedFileError(
                    f"Cannot load {target_path} referenced by {ref} in {context.schema_path} (resolving {context.original_schema_path}): {e}",
                    path=context.schema_path,
                    ref=ref,
                ) from e
            context.cache.put(target_path, None, document)

        if pointer is None:
            return document

        target = resolve_pointer(document, pointer)
        if is_missing(target):
            raise RefNotFoundError(f"$ref {ref} not found in {target_path}", path=context.schema_path, ref=ref)
        context.cache.put(target_path, pointer, target)
        return target
