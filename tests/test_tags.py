"""Tests for perch.binding.tags — field tags in dataclass metadata."""

import dataclasses
from dataclasses import dataclass

import pytest

from perch.binding.tags import METADATA_KEY, NO_TAGS, FieldTags, Source, embedded, field, tags_of


@dataclass
class Paging:
    page: int = field(1, query="page")


@dataclass
class Listing:
    id: int = field(0, name="id", json="ID")
    q: str = field("", query="q", header="X-Query")
    since: str = field("", format="%Y")
    plain: int = 0
    paging: Paging = embedded(default_factory=Paging)
    extra: list[str] = field(default_factory=list, metadata={"doc": "free"}, repr=False)


def _tags(name: str) -> FieldTags:
    (f,) = [f for f in dataclasses.fields(Listing) if f.name == name]
    return tags_of(f)


class TestField:
    def test_default_kept(self) -> None:
        assert Listing().id == 0
        assert Listing().extra == []

    def test_tags_stored_in_metadata(self) -> None:
        (f,) = [f for f in dataclasses.fields(Listing) if f.name == "q"]
        assert isinstance(f.metadata[METADATA_KEY], FieldTags)

    def test_extra_metadata_and_options_preserved(self) -> None:
        (f,) = [f for f in dataclasses.fields(Listing) if f.name == "extra"]
        assert f.metadata["doc"] == "free"
        assert f.repr is False

    def test_get(self) -> None:
        tags = _tags("id")
        assert tags.get("json") == "ID"
        assert tags.get("xml") is None

    def test_format(self) -> None:
        assert _tags("since").format == "%Y"

    def test_untagged_field(self) -> None:
        assert _tags("plain") is NO_TAGS


class TestSourceKey:
    def test_own_tag_wins(self) -> None:
        tags = _tags("q")
        assert tags.source_key(Source.QUERY) == "q"
        assert tags.source_key(Source.HEADER) == "X-Query"

    def test_shared_name_fallback(self) -> None:
        tags = _tags("id")
        for source in Source:
            assert tags.source_key(source) == "id"

    def test_missing(self) -> None:
        assert _tags("q").source_key(Source.FORM) is None


class TestEmbedded:
    def test_marks_embedded(self) -> None:
        assert _tags("paging").embedded is True
        assert _tags("q").embedded is False

    def test_body_tags_allowed(self) -> None:
        @dataclass
        class Outer:
            paging: Paging = embedded(default_factory=Paging, json="paging")

        (f,) = dataclasses.fields(Outer)
        assert tags_of(f).get("json") == "paging"
        assert tags_of(f).embedded is True

    def test_mutable_default_rejected(self) -> None:
        with pytest.raises(ValueError):

            @dataclass
            class Bad:
                items: list[str] = field([])
