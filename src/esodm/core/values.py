"""
Pydantic v2 value models exchanged between domain objects, the mapping engine and the
(external) I/O layer.

Responsibilities
- Engine-managed optimistic-concurrency token (SeqNoPrimaryTerm).
- Structured field values with a fixed document shape (JoinField, GeoPoint).
- Out-of-band metadata arriving with a document (DocumentEnvelope) and leaving with a
  write (IndexedDocument), plus the SearchHit pairing of content and envelope.

Style
- Zero-IO (stdlib + pydantic only).
- `extra="forbid"` everywhere; combination rules enforced via model_validator.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .constants import JOIN_NAME_KEY, JOIN_PARENT_KEY
from .errors import MappingError
from .grammar import VersionType
from .typing import Document

__all__ = [
    "SeqNoPrimaryTerm",
    "JoinField",
    "GeoPoint",
    "DocumentEnvelope",
    "IndexedDocument",
    "SearchHit",
]

T = TypeVar("T")


class SeqNoPrimaryTerm(BaseModel):
    """
    Sequence number / primary term pair assigned by the engine to a document revision.

    Attributes:
        sequence_number (int): Non-negative sequence number.
        primary_term (int): Primary term, starting at 1.

    Notes:
        A property of this type is classified as the entity's sequence/term property. It
        never appears in a document body; it is filled from the DocumentEnvelope.

    Examples:
        >>> SeqNoPrimaryTerm(sequence_number=3, primary_term=1).sequence_number
        3
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    sequence_number: int = Field(..., ge=0)
    primary_term: int = Field(..., ge=1)


class JoinField(BaseModel):
    """
    Value of a join-typed property: the relation name and, for children, the parent id.

    Examples:
        >>> JoinField(name="answer", parent="42").to_document()
        {'name': 'answer', 'parent': '42'}
        >>> JoinField.from_document("question").name
        'question'
    """

    model_config = ConfigDict(extra="forbid")

    name: str
    parent: str | None = None

    def to_document(self) -> dict[str, Any]:
        doc: dict[str, Any] = {JOIN_NAME_KEY: self.name}
        if self.parent is not None:
            doc[JOIN_PARENT_KEY] = self.parent
        return doc

    @classmethod
    def from_document(cls, value: Any) -> JoinField:
        if isinstance(value, str):
            return cls(name=value)
        if isinstance(value, Mapping):
            parent = value.get(JOIN_PARENT_KEY)
            return cls(name=value[JOIN_NAME_KEY], parent=None if parent is None else str(parent))
        raise TypeError(f"join value must be a str or mapping, got {type(value).__name__}")


class GeoPoint(BaseModel):
    """
    Geographic point stored as `{"lat": ..., "lon": ...}`.

    Examples:
        >>> GeoPoint.from_document("52.5,13.4")
        GeoPoint(lat=52.5, lon=13.4)
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    lat: float = Field(..., ge=-90.0, le=90.0)
    lon: float = Field(..., ge=-180.0, le=180.0)

    def to_document(self) -> dict[str, float]:
        return {"lat": self.lat, "lon": self.lon}

    @classmethod
    def from_document(cls, value: Any) -> GeoPoint:
        if isinstance(value, str):
            lat, _, lon = value.partition(",")
            return cls(lat=float(lat), lon=float(lon))
        if isinstance(value, Mapping):
            return cls(lat=value["lat"], lon=value["lon"])
        if isinstance(value, (list, tuple)) and len(value) == 2:
            # GeoJSON order: [lon, lat]
            return cls(lat=value[1], lon=value[0])
        raise TypeError(f"geo point must be a str, mapping or [lon, lat], got {value!r}")


class DocumentEnvelope(BaseModel):
    """
    Out-of-band metadata accompanying a document read from the engine.

    Attributes:
        id (str | None): Document id.
        index (str | None): Concrete index the document came from.
        seq_no (int | None): Sequence number; given together with primary_term.
        primary_term (int | None): Primary term; given together with seq_no.
        version (int | None): Engine-tracked version number.
        score (float | None): Relevance score of a search hit.
        sort_values (list[Any]): Sort values of a search hit.
        routing (str | None): Routing value used for the document.

    Raises:
        pydantic.ValidationError: If only one of seq_no / primary_term is present.
    """

    model_config = ConfigDict(extra="forbid")

    id: str | None = None
    index: str | None = None
    seq_no: int | None = Field(default=None, ge=0)
    primary_term: int | None = Field(default=None, ge=1)
    version: int | None = None
    score: float | None = None
    sort_values: list[Any] = Field(default_factory=list)
    routing: str | None = None

    @model_validator(mode="after")
    def _seq_no_and_primary_term_together(self) -> DocumentEnvelope:
        if (self.seq_no is None) != (self.primary_term is None):
            raise MappingError("seq_no and primary_term must be given together")
        return self

    @property
    def seq_no_primary_term(self) -> SeqNoPrimaryTerm | None:
        if self.seq_no is None or self.primary_term is None:
            return None
        return SeqNoPrimaryTerm(sequence_number=self.seq_no, primary_term=self.primary_term)

    @classmethod
    def from_hit(cls, hit: Mapping[str, Any]) -> DocumentEnvelope:
        """
        Build an envelope from a raw engine hit (`_id`, `_index`, `_seq_no`, ...).

        Unknown hit keys (e.g. `_source`, `highlight`) are ignored.
        """
        score = hit.get("_score")
        return cls(
            id=hit.get("_id"),
            index=hit.get("_index"),
            seq_no=hit.get("_seq_no"),
            primary_term=hit.get("_primary_term"),
            version=hit.get("_version"),
            score=None if score is None else float(score),
            sort_values=list(hit.get("sort") or []),
            routing=hit.get("_routing"),
        )


class IndexedDocument(BaseModel):
    """
    A document plus what the I/O layer needs to address the write.

    Attributes:
        index (str): Resolved index name.
        id (str | None): Document id (None lets the engine assign one).
        document (dict[str, Any]): Ordered document body.
        version (int | None): Application-supplied version number.
        version_type (VersionType | None): Protocol for `version`; None without a version.
        seq_no (int | None): `if_seq_no` for engine-native optimistic concurrency.
        primary_term (int | None): `if_primary_term` for engine-native optimistic concurrency.
        routing (str | None): Routing value.
    """

    model_config = ConfigDict(extra="forbid")

    index: str
    id: str | None = None
    document: Document
    version: int | None = None
    version_type: VersionType | None = None
    seq_no: int | None = None
    primary_term: int | None = None
    routing: str | None = None


@dataclass(frozen=True)
class SearchHit(Generic[T]):
    """Domain object read from a hit, with the hit's envelope."""

    content: T
    envelope: DocumentEnvelope

    @property
    def id(self) -> str | None:
        return self.envelope.id

    @property
    def score(self) -> float | None:
        return self.envelope.score
