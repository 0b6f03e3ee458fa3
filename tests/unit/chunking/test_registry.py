"""
Tests for StrategyRegistry.
"""

from typing import Iterator

import pytest

from chunkforge.chunking.base import ChunkDraft, ChunkingContext, ChunkingStrategy
from chunkforge.chunking.registry import (
    BUILTIN_METADATA,
    StrategyMetadata,
    StrategyRegistry,
    default_registry,
)
from chunkforge.chunking.smart_chunker import SmartChunker


class WholeDocumentChunker(ChunkingStrategy):
    name = "Whole"

    def _iter_drafts(self, context: ChunkingContext) -> Iterator[ChunkDraft]:
        yield ChunkDraft(start=0, end=len(context.text))


class TestBuiltins:
    def test_five_builtins_without_auto(self, registry):
        assert len(registry) == 5
        assert "Auto" not in registry
        assert set(registry.names()) == {m.name for m in BUILTIN_METADATA}

    def test_snapshot_ordered_by_priority(self, registry):
        assert registry.names() == ["Smart", "Intelligent", "Semantic", "Paragraph", "FixedSize"]

    def test_strategies_are_instantiated(self, registry):
        assert isinstance(registry.get_strategy("Smart"), SmartChunker)

    def test_lookup_is_case_insensitive(self, registry):
        assert registry.get_strategy("fixedsize") is registry.get_strategy("FixedSize")

    def test_unknown_name(self, registry):
        assert registry.get_strategy("Legal") is None
        assert registry.get_metadata("Legal") is None

    def test_default_registry_is_shared(self):
        assert default_registry() is default_registry()


class TestRegistration:
    """Runtime registration and replacement."""

    def test_register_custom_strategy(self, registry):
        registry.register(StrategyMetadata(name="Whole", priority_score=10), WholeDocumentChunker())

        assert "Whole" in registry
        assert isinstance(registry.get_strategy("Whole"), WholeDocumentChunker)
        assert registry.names()[-1] == "Whole"

    def test_last_registration_wins(self, registry):
        registry.register(StrategyMetadata(name="Smart", priority_score=1))

        assert registry.get_metadata("Smart").priority_score == 1
        # Metadata-only registration keeps the existing implementation
        assert isinstance(registry.get_strategy("Smart"), SmartChunker)

    def test_unregister(self, registry):
        assert registry.unregister("Paragraph")
        assert not registry.unregister("Paragraph")
        assert "Paragraph" not in registry

    def test_snapshot_is_a_copy(self, registry):
        snapshot = registry.snapshot()
        registry.unregister("Smart")

        assert any(m.name == "Smart" for m in snapshot)

    def test_empty_registry(self):
        assert StrategyRegistry().snapshot() == []


class TestMetadataValidation:
    def test_empty_name_rejected(self):
        with pytest.raises(AssertionError):
            StrategyMetadata(name="")

    def test_rating_range(self):
        with pytest.raises(AssertionError):
            StrategyMetadata(name="Fast", speed_rating=6)
