"""
Configuration for the esodm mapping context.

Defines MappingSettings, a frozen dataclass carrying the context-wide mapping options.
Defaults are sourced from esodm.core.constants and match a context built without any
configuration: identity field naming, case-sensitive wire names, no type hints.

Sources, with precedence env > TOML > defaults
- Environment: ESODM_FIELD_NAMING_STRATEGY, ESODM_CASE_SENSITIVE_FIELDS,
  ESODM_WRITE_TYPE_HINTS, ESODM_TYPE_HINT_FIELD.
- TOML: ./esodm.toml (top-level keys or a [mapping] table), else ./pyproject.toml
  under [tool.esodm.mapping].

Import DAG discipline
- Depends only on stdlib and esodm.core (constants, naming).
- Does not import esodm.mapping.
"""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

from esodm.core.constants import DEFAULT_TYPE_HINT_FIELD, ENV_PREFIX
from esodm.core.naming import FieldNamingStrategy, naming_strategy_from_name

__all__ = ["MappingSettings", "NAMING_STRATEGIES"]

logger = logging.getLogger(__name__)

NAMING_STRATEGIES: frozenset[str] = frozenset({"property_name", "snake_case", "camel_case"})


def _bool(v: Any) -> bool:
    if isinstance(v, bool):
        return v
    if isinstance(v, (int, float)):
        return bool(v)
    if isinstance(v, str):
        return v.strip().lower() in {"1", "true", "t", "yes", "y", "on"}
    return False


@dataclass(frozen=True)
class MappingSettings:
    """
    Context-wide mapping options.

    Attributes:
        field_naming_strategy (str): "property_name" (identity), "snake_case" or "camel_case".
        case_sensitive_fields (bool): If False, wire names are unique case-insensitively and
            document keys match properties case-insensitively on read.
        write_type_hints (bool): Emit the fully-qualified type name into written documents.
        type_hint_field (str): Document key carrying the type name.

    Examples:
        >>> MappingSettings(field_naming_strategy="snake_case").naming_strategy().resolve("firstName")
        'first_name'
    """

    field_naming_strategy: str = "property_name"
    case_sensitive_fields: bool = True
    write_type_hints: bool = False
    type_hint_field: str = DEFAULT_TYPE_HINT_FIELD

    def naming_strategy(self) -> FieldNamingStrategy:
        """
        Build the configured strategy.

        Raises:
            ValueError: If `field_naming_strategy` is not a known name.
        """
        return naming_strategy_from_name(self.field_naming_strategy)

    # Configuration loaders (env/TOML) with precedence: env > TOML > defaults.

    @classmethod
    def _apply_mapping(cls, base: MappingSettings, cfg: dict[str, Any] | None) -> MappingSettings:
        """Apply a loose config mapping onto MappingSettings, returning a new instance."""
        if not isinstance(cfg, dict):
            return base

        s = base

        if "field_naming_strategy" in cfg and isinstance(cfg["field_naming_strategy"], str):
            name = cfg["field_naming_strategy"].strip().lower()
            if name in NAMING_STRATEGIES:
                s = replace(s, field_naming_strategy=name)
            else:
                logger.warning(f"Ignoring unknown field naming strategy {name!r}")

        if "case_sensitive_fields" in cfg:
            s = replace(s, case_sensitive_fields=_bool(cfg["case_sensitive_fields"]))

        if "write_type_hints" in cfg:
            s = replace(s, write_type_hints=_bool(cfg["write_type_hints"]))

        if "type_hint_field" in cfg and isinstance(cfg["type_hint_field"], str):
            field_name = cfg["type_hint_field"].strip()
            if field_name:
                s = replace(s, type_hint_field=field_name)

        return s

    @classmethod
    def from_env(cls, base: MappingSettings | None = None, prefix: str = ENV_PREFIX) -> MappingSettings:
        """
        Build MappingSettings from environment variables. Precedence is env > base (if provided) > defaults.

        Recognized variables:
            - ESODM_FIELD_NAMING_STRATEGY ("property_name" | "snake_case" | "camel_case")
            - ESODM_CASE_SENSITIVE_FIELDS (1/0/true/false/yes/no/on/off)
            - ESODM_WRITE_TYPE_HINTS (1/0/true/false/yes/no/on/off)
            - ESODM_TYPE_HINT_FIELD
        """
        s = base or cls()
        mapping: dict[str, Any] = {}
        for key in ("field_naming_strategy", "case_sensitive_fields", "write_type_hints", "type_hint_field"):
            v = os.getenv(prefix + key.upper())
            if v:
                mapping[key] = v
        return cls._apply_mapping(s, mapping)

    @classmethod
    def from_toml(cls, path: str | os.PathLike[str] | None = None) -> MappingSettings:
        """
        Build MappingSettings from a TOML file.

        Search order when `path` is None:
            1) ./esodm.toml (with either a [mapping] table or direct keys)
            2) ./pyproject.toml under [tool.esodm.mapping]

        Returns defaults if no file is present or none carries mapping keys.
        """
        s = cls()

        cand: list[Path] = []
        if path is not None:
            cand.append(Path(path))
        else:
            cand.append(Path.cwd() / "esodm.toml")
            cand.append(Path.cwd() / "pyproject.toml")

        cfg: dict[str, Any] | None = None
        for p in cand:
            if not p.exists():
                continue
            try:
                with p.open("rb") as fh:
                    data = tomllib.load(fh)
            except (OSError, tomllib.TOMLDecodeError) as exc:
                logger.warning(f"Skipping unreadable settings file {p}: {exc}")
                continue
            if p.name == "pyproject.toml":
                tool = data.get("tool", {})
                cfg = tool.get("esodm", {}).get("mapping", {}) if isinstance(tool, dict) else None
            elif isinstance(data.get("mapping"), dict):
                cfg = data["mapping"]
            else:
                cfg = data
            if cfg:
                logger.debug(f"Loaded mapping settings from {p}")
                break

        return cls._apply_mapping(s, cfg)

    @classmethod
    def load(cls, path: str | os.PathLike[str] | None = None) -> MappingSettings:
        """
        Load MappingSettings applying precedence: environment > TOML > defaults.

        Args:
            path: Optional explicit TOML path. If None, search defaults (esodm.toml, pyproject.toml).
        """
        s = cls.from_toml(path)
        return cls.from_env(base=s)
