"""Unit tests for kinds and the key factory cache."""

from __future__ import annotations

import pytest

from cirrus.interfaces.document_store import NAMESPACE_KIND, Key
from cirrus.storage.kinds import KeyFactories, Kind
from cirrus.tenant.namespace import DEFAULT, Namespace


class TestKind:
    """Kind names."""

    @staticmethod
    @pytest.mark.parametrize("value", ["", "   ", "__private", "__namespace"])
    def test_invalid_names_are_rejected(value: str) -> None:
        with pytest.raises(ValueError):
            Kind(value)

    @staticmethod
    def test_namespace_kind_is_the_only_reserved_name() -> None:
        assert Kind.namespace().value == NAMESPACE_KIND

    @staticmethod
    def test_of_accepts_kind_or_str() -> None:
        kind = Kind("Task")
        assert Kind.of(kind) is kind
        assert Kind.of("Task") == kind

    @staticmethod
    def test_child() -> None:
        assert Kind("Task").child("EventCount") == Kind("Task.EventCount")
        assert str(Kind("Task").child("LifecycleFlags")) == "Task.LifecycleFlags"


class TestKeyFactories:
    """Insert-if-absent cache."""

    @staticmethod
    def test_factory_builds_keys_in_its_namespace() -> None:
        factory = KeyFactories().get(Kind("Task"), Namespace("Vacme"))
        assert factory.new_key("t1") == Key("Vacme", "Task", "t1")

    @staticmethod
    def test_factories_are_cached_per_kind_and_namespace() -> None:
        factories = KeyFactories()
        first = factories.get(Kind("Task"), DEFAULT)
        assert factories.get(Kind("Task"), DEFAULT) is first
        assert factories.get(Kind("Task"), Namespace("Vacme")) is not first
        assert factories.get(Kind("Note"), DEFAULT) is not first
        assert len(factories) == 3
