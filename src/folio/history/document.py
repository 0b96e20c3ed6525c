"""Document value type and its persistence codec.

A document is a heading block plus an ordered list of fragments, each
either a markdown section or an attached PDF.  Documents are frozen and
compare by value, so a controller configured with ``equality="structural"``
skips no-op edits.

PDF bytes never go into the history snapshot: :func:`serialize_document`
keeps only the fragment id and name, and the caller re-attaches ``data``
from its own blob store after hydration.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from folio.history.persistence import (
    SNAPSHOT_VERSION,
    PersistenceAdapter,
    decode_payload,
)
from folio.history.storage import Storage


@dataclass(frozen=True)
class MarkdownFragment:
    id: str
    title: str = ""
    content: str = ""

    @property
    def type(self) -> str:
        return "markdown"

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "type": "markdown", "title": self.title, "content": self.content}


@dataclass(frozen=True)
class PdfFragment:
    id: str
    name: str = ""
    data: bytes | str | None = field(default=None, compare=False, repr=False)

    @property
    def type(self) -> str:
        return "pdf"

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "type": "pdf", "name": self.name}


Fragment = MarkdownFragment | PdfFragment


@dataclass(frozen=True)
class Document:
    """Heading fields plus the fragment list rendered into the preview."""

    doc_title: str = ""
    doc_date: str = ""
    left_heading_fields: tuple[str, ...] = ()
    right_heading_fields: tuple[str, ...] = ()
    plaintiff_name: str = ""
    defendant_name: str = ""
    court_title: str = ""
    show_page_numbers: bool = True
    page_number_placement: str = "right"
    fragments: tuple[Fragment, ...] = ()

    def with_fragments(self, fragments: tuple[Fragment, ...] | list[Fragment]) -> Document:
        return replace(self, fragments=tuple(fragments))

    def to_dict(self) -> dict[str, Any]:
        return serialize_document(self)


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _text_list(value: Any) -> tuple[str, ...]:
    if not isinstance(value, (list, tuple)):
        return ()
    return tuple(v if isinstance(v, str) else str(v) for v in value)


def serialize_fragment(fragment: Any) -> dict[str, Any] | None:
    if isinstance(fragment, (MarkdownFragment, PdfFragment)):
        return fragment.to_dict()
    if not isinstance(fragment, Mapping):
        return None
    frag = deserialize_fragment(fragment)
    return frag.to_dict() if frag is not None else None


def deserialize_fragment(raw: Any) -> Fragment | None:
    """Build a fragment from a mapping; unknown types are read as markdown."""
    if isinstance(raw, (MarkdownFragment, PdfFragment)):
        return raw
    if not isinstance(raw, Mapping):
        return None
    frag_id = str(raw.get("id", ""))
    if raw.get("type") == "pdf":
        return PdfFragment(id=frag_id, name=_text(raw.get("name")), data=raw.get("data"))
    return MarkdownFragment(
        id=frag_id, title=_text(raw.get("title")), content=_text(raw.get("content"))
    )


def serialize_document(doc: Any) -> dict[str, Any] | None:
    """Plain-dict form of *doc*, without PDF payloads."""
    if isinstance(doc, Mapping):
        doc = deserialize_document(doc)
    if not isinstance(doc, Document):
        return None
    fragments = [serialize_fragment(f) for f in doc.fragments]
    return {
        "docTitle": doc.doc_title,
        "docDate": doc.doc_date,
        "leftHeadingFields": list(doc.left_heading_fields),
        "rightHeadingFields": list(doc.right_heading_fields),
        "plaintiffName": doc.plaintiff_name,
        "defendantName": doc.defendant_name,
        "courtTitle": doc.court_title,
        "showPageNumbers": doc.show_page_numbers,
        "pageNumberPlacement": doc.page_number_placement,
        "fragments": [f for f in fragments if f is not None],
    }


def deserialize_document(raw: Any) -> Document | None:
    """Normalize a stored mapping into a :class:`Document` (``None`` if unusable)."""
    if isinstance(raw, Document):
        return raw
    if not isinstance(raw, Mapping):
        return None
    fragments_raw = raw.get("fragments")
    fragments: list[Fragment] = []
    if isinstance(fragments_raw, (list, tuple)):
        for item in fragments_raw:
            frag = deserialize_fragment(item)
            if frag is not None:
                fragments.append(frag)
    placement = raw.get("pageNumberPlacement")
    show = raw.get("showPageNumbers")
    return Document(
        doc_title=_text(raw.get("docTitle")),
        doc_date=_text(raw.get("docDate")),
        left_heading_fields=_text_list(raw.get("leftHeadingFields")),
        right_heading_fields=_text_list(raw.get("rightHeadingFields")),
        plaintiff_name=_text(raw.get("plaintiffName")),
        defendant_name=_text(raw.get("defendantName")),
        court_title=_text(raw.get("courtTitle")),
        show_page_numbers=show if isinstance(show, bool) else True,
        page_number_placement=placement if isinstance(placement, str) and placement else "right",
        fragments=tuple(fragments),
    )


def _convert_all(items: Any, convert) -> list:
    if not isinstance(items, (list, tuple)):
        return []
    converted = (convert(item) for item in items)
    return [c for c in converted if c is not None]


def serialize_history(snapshot: dict[str, Any]) -> dict[str, Any]:
    """``serialize`` hook: documents in a snapshot become plain dicts."""
    return {
        "version": snapshot.get("version", SNAPSHOT_VERSION),
        "past": _convert_all(snapshot.get("past"), serialize_document),
        "present": serialize_document(snapshot.get("present")),
        "future": _convert_all(snapshot.get("future"), serialize_document),
    }


def deserialize_history(raw: Any) -> dict[str, Any] | None:
    """``deserialize`` hook: parse a stored payload back into documents.

    Returns ``None`` (no usable snapshot) when the payload is not a mapping
    or its present document cannot be rebuilt.  Unusable past/future
    entries are dropped.
    """
    parsed = decode_payload(raw)
    if not isinstance(parsed, Mapping):
        return None
    present = deserialize_document(parsed.get("present"))
    if present is None:
        return None
    return {
        "version": parsed.get("version"),
        "past": _convert_all(parsed.get("past"), deserialize_document),
        "present": present,
        "future": _convert_all(parsed.get("future"), deserialize_document),
    }


def document_persistence(
    storage: Storage,
    key: str = "document-history",
    *,
    version: int = SNAPSHOT_VERSION,
    fmt: str = "json",
) -> PersistenceAdapter:
    """PersistenceAdapter wired with the document codec hooks."""
    return PersistenceAdapter(
        storage,
        key,
        version=version,
        serialize=serialize_history,
        deserialize=deserialize_history,
        fmt=fmt,
    )
