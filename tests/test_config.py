"""Tests for perch.config — BindConfig frozen dataclass."""

import pytest

from perch.config import BindConfig


class TestBindConfig:
    def test_defaults(self) -> None:
        cfg = BindConfig()

        assert cfg.time_format is None
        assert cfg.query_methods is None
        assert cfg.form_methods == frozenset({"POST", "PUT", "PATCH"})
        assert cfg.max_body_size == 16 * 1024 * 1024

    def test_override(self) -> None:
        cfg = BindConfig(time_format="%d/%m/%Y", query_methods=frozenset({"GET"}))

        assert cfg.time_format == "%d/%m/%Y"
        assert cfg.query_methods == frozenset({"GET"})

    def test_frozen(self) -> None:
        cfg = BindConfig()
        with pytest.raises(AttributeError):
            cfg.max_body_size = 1  # type: ignore[misc]

    def test_slots(self) -> None:
        assert not hasattr(BindConfig(), "__dict__")
