import json
from pathlib import Path

import pytest

from tutorview.engine.page_store import PageText
from tutorview.ingest.page_text import DocumentLoadError, load_page_texts, split_pages


def test_split_pages_on_form_feed():
    assert split_pages("one\ftwo\f") == [PageText(0, "one"), PageText(1, "two")]
    assert split_pages("") == [PageText(0, "")]


def test_text_document(tmp_path: Path):
    path = tmp_path / "notes.txt"
    path.write_text("Ashoka\fKalinga\fDhamma", encoding="utf-8")
    pages = load_page_texts(path)
    assert [page.content for page in pages] == ["Ashoka", "Kalinga", "Dhamma"]


def test_json_document_variants(tmp_path: Path):
    plain = tmp_path / "plain.json"
    plain.write_text(json.dumps(["a", "b"]), encoding="utf-8")
    assert load_page_texts(plain) == [PageText(0, "a"), PageText(1, "b")]

    indexed = tmp_path / "indexed.json"
    indexed.write_text(
        json.dumps({"pages": [{"index": 1, "content": "b"}, {"index": 0, "content": "a"}]}),
        encoding="utf-8",
    )
    assert load_page_texts(indexed) == [PageText(1, "b"), PageText(0, "a")]


def test_bad_json_raises(tmp_path: Path):
    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    with pytest.raises(DocumentLoadError):
        load_page_texts(broken)

    wrong_shape = tmp_path / "shape.json"
    wrong_shape.write_text(json.dumps({"pages": [42]}), encoding="utf-8")
    with pytest.raises(DocumentLoadError):
        load_page_texts(wrong_shape)


def test_unsupported_and_missing_files(tmp_path: Path):
    with pytest.raises(DocumentLoadError):
        load_page_texts(tmp_path / "slides.pptx")
    with pytest.raises(DocumentLoadError):
        load_page_texts(tmp_path / "missing.txt")
