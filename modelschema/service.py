# File: modelschema/service.py
"""
ModelSchema - Generation Service
=================================
Orchestrates one or many generators over a single ``Schema``.

``generate`` runs exactly one generator and lets its exceptions propagate.
``generate_all`` runs a list of generators (all registered ones by
default) and isolates failures per item: a broken generator contributes
``{"error": "<message>"}`` under its own key and never blocks its
siblings::

    batch = GenerationService().generate_all(schema, ["migration", "unknown_generator"])
    batch.as_dict()
    # {"migration": {...}, "unknown_generator": {"error": "Unknown generator ..."}}

Generators share no mutable state; the reference behaviour runs them
sequentially in the requested order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence

from modelschema.config import GenerationSettings
from modelschema.exceptions import UnknownGeneratorError
from modelschema.fragments import BaseGenerator, Fragment
from modelschema.generators import DATA_GENERATORS
from modelschema.models import Schema
from modelschema.scaffolding import SCAFFOLD_GENERATORS
from modelschema.utils import Timer
from modelschema.validation import AutoValidationService

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modelschema.service")


# ---------------------------------------------------------------------------
# Batch results
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class GenerationOutcome:
    """Result of one generator inside a batch: a fragment or an error message."""

    name: str
    fragment: Optional[Fragment] = None
    error: Optional[str] = None
    elapsed_seconds: float = 0.0

    @property
    def ok(self) -> bool:
        return self.fragment is not None

    def as_value(self) -> Dict[str, Any]:
        if self.fragment is not None:
            return self.fragment.body
        return {"error": self.error or "unknown error"}


class GenerationBatch:
    """Ordered outcomes of a ``generate_all`` call."""

    __slots__ = ("schema_name", "outcomes")

    def __init__(self, schema_name: str, outcomes: Iterable[GenerationOutcome] = ()) -> None:
        self.schema_name: str = schema_name
        self.outcomes: List[GenerationOutcome] = list(outcomes)

    def add(self, outcome: GenerationOutcome) -> None:
        self.outcomes.append(outcome)

    def as_dict(self) -> Dict[str, Any]:
        """Requested name → fragment body, or ``{"error": message}``."""
        return {o.name: o.as_value() for o in self.outcomes}

    @property
    def fragments(self) -> Dict[str, Fragment]:
        return {o.name: o.fragment for o in self.outcomes if o.fragment is not None}

    @property
    def errors(self) -> Dict[str, str]:
        return {o.name: o.error or "" for o in self.outcomes if o.fragment is None}

    @property
    def succeeded(self) -> List[str]:
        return [o.name for o in self.outcomes if o.ok]

    @property
    def failed(self) -> List[str]:
        return [o.name for o in self.outcomes if not o.ok]

    @property
    def all_succeeded(self) -> bool:
        return not self.failed

    def __len__(self) -> int:
        return len(self.outcomes)

    def __repr__(self) -> str:
        return (
            f"<GenerationBatch {self.schema_name} ok={len(self.succeeded)} "
            f"failed={len(self.failed)}>"
        )


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class GenerationService:
    """
    Registry of generators plus batch orchestration.

    All built-in generators are registered on construction and share one
    ``AutoValidationService`` (and therefore one ``TypeResolver``).

    Example::

        service = GenerationService(AutoValidationService(TypeResolver(plugins)))
        fragment = service.generate(schema, "requests")
        batch = service.generate_all(schema, options={"seeder_count": 50})
    """

    def __init__(
        self,
        validation: Optional[AutoValidationService] = None,
        settings: Optional[GenerationSettings] = None,
        register_defaults: bool = True,
    ) -> None:
        self.validation: AutoValidationService = validation or AutoValidationService(settings=settings)
        self.settings: GenerationSettings = settings or self.validation.settings
        self._generators: Dict[str, BaseGenerator] = {}
        self._aliases: Dict[str, str] = {}
        if register_defaults:
            for generator_cls in (*DATA_GENERATORS, *SCAFFOLD_GENERATORS):
                self.register(generator_cls(self.validation, self.settings))

    # -- Registry -----------------------------------------------------------

    def register(self, generator: BaseGenerator) -> None:
        """Register (or replace) a generator under its name and aliases."""
        if not generator.name:
            raise ValueError(f"{type(generator).__name__} has no name.")
        if generator.name in self._generators:
            logger.info("Replacing generator '%s'.", generator.name)
        self._generators[generator.name] = generator
        for alias in generator.aliases:
            self._aliases[alias] = generator.name
        logger.debug("Registered generator '%s' (aliases: %s).", generator.name, generator.aliases)

    def available_generators(self) -> Dict[str, str]:
        """Canonical name → description, in registration order."""
        return {name: gen.description for name, gen in self._generators.items()}

    def resolve_name(self, name: str) -> str:
        """
        Canonical generator name for ``name`` (aliases accepted).

        Raises:
            UnknownGeneratorError: nothing is registered under ``name``.
        """
        key: str = str(name).strip()
        if key in self._generators:
            return key
        if key in self._aliases:
            return self._aliases[key]
        raise UnknownGeneratorError(key, list(self._generators))

    def get(self, name: str) -> BaseGenerator:
        return self._generators[self.resolve_name(name)]

    def has(self, name: str) -> bool:
        try:
            self.resolve_name(name)
        except UnknownGeneratorError:
            return False
        return True

    # -- Generation ---------------------------------------------------------

    def generate(self, schema: Schema, name: str, options: Any = None) -> Fragment:
        """
        Run one generator.

        Raises:
            UnknownGeneratorError: ``name`` is not registered.
            Exception: whatever the generator raises (e.g. invalid options).
        """
        return self.get(name).generate(schema, options)

    def generate_all(
        self,
        schema: Schema,
        names: Optional[Sequence[str]] = None,
        options: Any = None,
    ) -> GenerationBatch:
        """
        Run every requested generator (all registered ones when ``names`` is
        None), capturing each failure as an error outcome.
        """
        requested: List[str] = list(names) if names is not None else list(self._generators)
        batch: GenerationBatch = GenerationBatch(schema.name)
        logger.info("Generating %d fragment(s) for %s.", len(requested), schema.name)

        for name in requested:
            fragment: Optional[Fragment] = None
            error: Optional[str] = None
            with Timer(f"generate:{name}") as t:
                try:
                    fragment = self.generate(schema, name, options)
                except Exception as exc:  # isolated per generator
                    error = str(exc) or type(exc).__name__
                    logger.error("Generator '%s' failed for %s: %s", name, schema.name, error)
            batch.add(GenerationOutcome(name, fragment, error, t.elapsed))

        logger.info(
            "Generation for %s finished: %d ok, %d failed.",
            schema.name,
            len(batch.succeeded),
            len(batch.failed),
        )
        return batch

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.has(name)

    def __repr__(self) -> str:
        return f"<GenerationService generators={list(self._generators)}>"


__all__: List[str] = ["GenerationOutcome", "GenerationBatch", "GenerationService"]

logger.debug("modelschema.service loaded, %d public symbols.", len(__all__))
