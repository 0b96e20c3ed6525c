"""Tests for folio.history.document — document value type and codec."""

from __future__ import annotations

import json

import pytest

from folio.history.controller import HistoryController
from folio.history.document import (
    Document,
    MarkdownFragment,
    PdfFragment,
    deserialize_document,
    deserialize_fragment,
    deserialize_history,
    document_persistence,
    serialize_document,
    serialize_history,
)
from folio.history.storage import MemoryStorage


# ---------------------------------------------------------------------------
# Fragments
# ---------------------------------------------------------------------------


class TestFragments:
    def test_markdown_type(self):
        assert MarkdownFragment(id="1").type == "markdown"

    def test_pdf_type(self):
        assert PdfFragment(id="1").type == "pdf"

    def test_pdf_data_not_serialized(self):
        d = PdfFragment(id="p", name="a.pdf", data=b"%PDF").to_dict()
        assert d == {"id": "p", "type": "pdf", "name": "a.pdf"}

    def test_pdf_equality_ignores_data(self):
        assert PdfFragment(id="p", name="a", data=b"1") == PdfFragment(id="p", name="a")

    def test_deserialize_unknown_type_is_markdown(self):
        frag = deserialize_fragment({"id": "x", "type": "html", "content": "hi"})
        assert frag == MarkdownFragment(id="x", content="hi")

    def test_deserialize_pdf_keeps_data(self):
        frag = deserialize_fragment({"id": "p", "type": "pdf", "name": "n", "data": "b64"})
        assert frag.data == "b64"

    @pytest.mark.parametrize("raw", [None, "frag", 7])
    def test_deserialize_non_mapping(self, raw):
        assert deserialize_fragment(raw) is None

    def test_non_string_fields_default_empty(self):
        frag = deserialize_fragment({"id": 3, "title": None, "content": 5})
        assert frag == MarkdownFragment(id="3", title="", content="")


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


class TestDocumentCodec:
    def test_serialize_shape(self, sample_document):
        d = serialize_document(sample_document)
        assert d["docTitle"] == "Motion to Compel"
        assert d["leftHeadingFields"] == ["Jane Doe", "Plaintiff in Pro Per"]
        assert d["fragments"][1] == {"id": "frag-2", "type": "pdf", "name": "exhibit-a.pdf"}
        json.dumps(d)

    def test_roundtrip(self, sample_document):
        restored = deserialize_document(serialize_document(sample_document))
        assert restored == sample_document
        assert restored.fragments[1].data is None

    def test_serialize_non_document(self):
        assert serialize_document("nope") is None

    def test_deserialize_non_mapping(self):
        assert deserialize_document([1, 2]) is None

    def test_deserialize_repairs_fields(self):
        doc = deserialize_document(
            {
                "leftHeadingFields": "not a list",
                "fragments": [{"id": "a"}, "junk", None],
                "showPageNumbers": "yes",
                "pageNumberPlacement": "",
            }
        )
        assert doc.left_heading_fields == ()
        assert doc.fragments == (MarkdownFragment(id="a"),)
        assert doc.show_page_numbers is True
        assert doc.page_number_placement == "right"

    def test_documents_hashable_and_comparable(self, sample_document):
        other = sample_document.with_fragments(list(sample_document.fragments))
        assert other == sample_document
        assert hash(other) == hash(sample_document)


# ---------------------------------------------------------------------------
# History hooks
# ---------------------------------------------------------------------------


class TestHistoryHooks:
    def test_serialize_history(self, sample_document):
        snap = {"version": 1, "past": [Document()], "present": sample_document, "future": []}
        out = serialize_history(snap)
        assert out["version"] == 1
        assert out["past"][0]["docTitle"] == ""
        assert out["present"]["plaintiffName"] == "Jane Doe"

    def test_deserialize_history(self, sample_document):
        raw = json.dumps(
            serialize_history(
                {"version": 1, "past": [Document()], "present": sample_document, "future": []}
            )
        )
        out = deserialize_history(raw)
        assert out["present"] == sample_document
        assert out["past"] == [Document()]

    def test_deserialize_history_drops_bad_entries(self, sample_document):
        raw = {"version": 1, "past": ["bad", None], "present": serialize_document(sample_document)}
        out = deserialize_history(raw)
        assert out["past"] == []
        assert out["future"] == []

    def test_deserialize_history_without_present(self):
        assert deserialize_history({"version": 1, "past": []}) is None

    def test_deserialize_history_corrupt(self):
        with pytest.raises(ValueError):
            deserialize_history("not json{")


class TestDocumentPersistence:
    @pytest.mark.asyncio
    async def test_controller_roundtrip(self, sample_document):
        storage = MemoryStorage()
        first = HistoryController(
            Document(),
            equality="structural",
            persistence=document_persistence(storage),
            auto_hydrate=False,
        )
        first.set(sample_document)
        edited = sample_document.with_fragments(
            sample_document.fragments + (MarkdownFragment(id="frag-3", title="Notes"),)
        )
        first.set(edited)
        first.undo()

        second = HistoryController(
            Document(),
            equality="structural",
            persistence=document_persistence(storage),
            auto_hydrate=False,
        )
        await second.hydrate()
        assert second.present == sample_document
        assert second.past == (Document(),)
        assert second.future == (edited,)

    @pytest.mark.asyncio
    async def test_msgpack_roundtrip(self, sample_document):
        storage = MemoryStorage()
        adapter = document_persistence(storage, "doc", fmt="msgpack")
        ctrl = HistoryController(Document(), persistence=adapter, auto_hydrate=False)
        ctrl.set(sample_document)
        assert isinstance(storage.get("doc"), bytes)
        loaded = await adapter.read(fallback=Document())
        assert loaded.present == sample_document

    @pytest.mark.asyncio
    async def test_corrupt_present_falls_back(self):
        storage = MemoryStorage({"document-history": json.dumps({"version": 1, "present": 3})})
        ctrl = HistoryController(
            Document(doc_title="default"),
            persistence=document_persistence(storage),
            auto_hydrate=False,
        )
        assert await ctrl.hydrate() is False
        assert ctrl.present.doc_title == "default"
