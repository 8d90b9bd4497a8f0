# File: modelschema/splitter.py
"""
ModelSchema - Core / Extension Splitter
========================================
Separates a raw input document into the part this package understands
(the *core*) and host-owned sections (the *extensions*).

Two layouts are recognised and never mixed for one document:

    flat     core keys at top level, anything else is an extension
    nested   an explicit ``core`` mapping wraps the core keys; every other
             top-level key is an extension

When a ``core`` mapping is present it wins: the nested layout is used and
top-level core-looking keys are treated as extensions.  Extensions are
passed through verbatim and are never validated.

For flat documents ``merge(split(doc)) == doc``.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Mapping

from modelschema.exceptions import SchemaParseError

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modelschema.splitter")

CORE_KEYS: FrozenSet[str] = frozenset(
    {"model", "name", "table", "fields", "relationships", "relations", "options", "metadata"}
)
CORE_WRAPPER: str = "core"


@dataclass(frozen=True, slots=True)
class SplitDocument:
    """Result of ``split``: the core section, the extensions and the layout used."""

    core: Dict[str, Any]
    extensions: Dict[str, Any] = field(default_factory=dict)
    nested: bool = False

    @property
    def has_extensions(self) -> bool:
        return bool(self.extensions)

    def merge(self) -> Dict[str, Any]:
        return merge(self.core, self.extensions, nested=self.nested)


def _require_mapping(document: Any) -> Mapping[str, Any]:
    if not isinstance(document, Mapping):
        raise SchemaParseError(
            f"A schema document must be a mapping, got {type(document).__name__}."
        )
    return document


def split(document: Mapping[str, Any]) -> SplitDocument:
    """
    Split ``document`` into core and extension sections (deep copies).

    Raises:
        SchemaParseError: ``document`` (or its ``core`` wrapper) is not a mapping.
    """
    document = _require_mapping(document)
    if CORE_WRAPPER in document:
        wrapped: Mapping[str, Any] = _require_mapping(document[CORE_WRAPPER])
        core: Dict[str, Any] = copy.deepcopy(dict(wrapped))
        extensions: Dict[str, Any] = {
            k: copy.deepcopy(v) for k, v in document.items() if k != CORE_WRAPPER
        }
        logger.debug(
            "Nested layout: %d core key(s), %d extension(s).", len(core), len(extensions)
        )
        return SplitDocument(core, extensions, nested=True)

    core = {k: copy.deepcopy(v) for k, v in document.items() if k in CORE_KEYS}
    extensions = {k: copy.deepcopy(v) for k, v in document.items() if k not in CORE_KEYS}
    logger.debug("Flat layout: %d core key(s), %d extension(s).", len(core), len(extensions))
    return SplitDocument(core, extensions, nested=False)


def merge(
    core: Mapping[str, Any],
    extensions: Mapping[str, Any],
    nested: bool = False,
) -> Dict[str, Any]:
    """
    Inverse of ``split``.

    Raises:
        ValueError: a flat merge where an extension key is also a core key.
    """
    if nested:
        merged: Dict[str, Any] = {CORE_WRAPPER: copy.deepcopy(dict(core))}
        merged.update(copy.deepcopy(dict(extensions)))
        return merged
    clashes: List[str] = sorted(set(core) & set(extensions))
    if clashes:
        raise ValueError(f"Extension keys collide with core keys: {', '.join(clashes)}.")
    merged = copy.deepcopy(dict(core))
    merged.update(copy.deepcopy(dict(extensions)))
    return merged


def extract_core(document: Mapping[str, Any]) -> Dict[str, Any]:
    return split(document).core


def extract_extensions(document: Mapping[str, Any]) -> Dict[str, Any]:
    return split(document).extensions


__all__: List[str] = [
    "CORE_KEYS",
    "CORE_WRAPPER",
    "SplitDocument",
    "split",
    "merge",
    "extract_core",
    "extract_extensions",
]

logger.debug("modelschema.splitter loaded, %d public symbols.", len(__all__))
