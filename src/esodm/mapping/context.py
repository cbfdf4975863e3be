"""
Mapping context: process-wide cache of persistent entity descriptors keyed by type.

Construction is lazy and single-flight per type:
- a registry lock guards the descriptor/failure caches and hands out one build lock
  per type;
- the first caller for a type builds while holding that type's build lock; concurrent
  callers for the same type block on it and then read the cached result;
- callers for other types are never blocked by the build.

Descriptors are published only after they are fully built, so no caller can observe a
partially built one. A ConfigurationError is cached as a permanent failure for its type
and re-raised on every later request.

Building a descriptor never builds the descriptors of entity-valued properties; those
are looked up through the context when values are converted.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from typing import Any

from esodm.core.converters import PropertyValueConverterRegistry
from esodm.core.errors import ConfigurationError
from esodm.core.naming import FieldNamingStrategy
from esodm.settings import MappingSettings

from .entity import ContextConfiguration, PersistentEntityDescriptor, build_persistent_entity, type_alias

__all__ = ["MappingContext"]

logger = logging.getLogger(__name__)


class MappingContext:
    """
    Owner of all entity descriptors of one configuration.

    Args:
        settings: Mapping options; defaults to `MappingSettings()`.
        field_naming_strategy: Strategy object; wins over `settings.field_naming_strategy`.
        converters: Converter registry; a fresh registry when omitted.
        initial_entity_types: Types to build eagerly.

    Raises:
        ValueError: If the settings name an unknown naming strategy.
        ConfigurationError: If one of `initial_entity_types` is misconfigured.
    """

    def __init__(
        self,
        settings: MappingSettings | None = None,
        *,
        field_naming_strategy: FieldNamingStrategy | None = None,
        converters: PropertyValueConverterRegistry | None = None,
        initial_entity_types: Iterable[type] = (),
    ):
        self.settings = settings or MappingSettings()
        self.configuration = ContextConfiguration(
            field_naming_strategy=field_naming_strategy or self.settings.naming_strategy(),
            case_sensitive_fields=self.settings.case_sensitive_fields,
            write_type_hints=self.settings.write_type_hints,
            type_hint_field=self.settings.type_hint_field,
        )
        self.converters = converters or PropertyValueConverterRegistry()
        self._entities: dict[type, PersistentEntityDescriptor] = {}
        self._failures: dict[type, ConfigurationError] = {}
        self._build_locks: dict[type, threading.Lock] = {}
        self._registry_lock = threading.Lock()
        self.initialize(initial_entity_types)

    def _get_or_create_lock(self, cls: type) -> threading.Lock:
        with self._registry_lock:
            lock = self._build_locks.get(cls)
            if lock is None:
                lock = threading.Lock()
                self._build_locks[cls] = lock
            return lock

    def _cached(self, cls: type) -> PersistentEntityDescriptor | None:
        with self._registry_lock:
            failure = self._failures.get(cls)
            if failure is not None:
                raise failure.with_traceback(None)
            return self._entities.get(cls)

    def get_persistent_entity(self, cls: type) -> PersistentEntityDescriptor:
        """
        Return the descriptor of `cls`, building it on first use.

        Raises:
            ConfigurationError: If `cls` is misconfigured (now or on an earlier attempt).
        """
        cached = self._cached(cls)
        if cached is not None:
            return cached

        with self._get_or_create_lock(cls):
            cached = self._cached(cls)
            if cached is not None:
                return cached
            try:
                entity = build_persistent_entity(cls, self.configuration, self.converters)
            except ConfigurationError as exc:
                logger.warning(f"Entity {_name(cls)} is misconfigured: {exc}")
                with self._registry_lock:
                    self._failures[cls] = exc
                    self._build_locks.pop(cls, None)
                raise
            with self._registry_lock:
                self._entities[cls] = entity
                self._build_locks.pop(cls, None)
            logger.debug(f"Built entity descriptor for {entity.name} ({len(entity.properties)} properties)")
            return entity

    def get_required_persistent_entity(self, cls: type) -> PersistentEntityDescriptor:
        return self.get_persistent_entity(cls)

    def has_persistent_entity(self, cls: type) -> bool:
        """True if a descriptor for `cls` has been built (never triggers a build)."""
        with self._registry_lock:
            return cls in self._entities

    @property
    def persistent_entities(self) -> tuple[PersistentEntityDescriptor, ...]:
        with self._registry_lock:
            return tuple(self._entities.values())

    def initialize(self, types: Iterable[type]) -> None:
        """Build descriptors for `types` eagerly; the first misconfigured type raises."""
        for cls in types:
            self.get_persistent_entity(cls)

    def find_entity_by_alias(self, alias: str) -> PersistentEntityDescriptor | None:
        """Descriptor whose fully-qualified type name is `alias`, among the built ones."""
        with self._registry_lock:
            for entity in self._entities.values():
                if entity.name == alias:
                    return entity
        return None


def _name(cls: Any) -> str:
    return type_alias(cls) if isinstance(cls, type) else repr(cls)
