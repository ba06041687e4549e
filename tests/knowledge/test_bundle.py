"""Tests for knowledge bundles and prompt assembly."""

import logging
from unittest.mock import MagicMock

import pytest

from inbox_triage.knowledge.bundle import (
    GLOBAL_KNOWLEDGE_HEADER,
    SPECIFIC_KNOWLEDGE_HEADER,
    KnowledgeBundle,
    assemble,
    estimate_tokens,
    load_bundle,
)
from inbox_triage.user_config import KnowledgeRef


class TestEstimateTokens:
    @pytest.mark.parametrize("text,expected", [("", 0), ("abcd", 1), ("abcde", 2), ("x" * 400, 100)])
    def test_estimate_tokens(self, text, expected):
        assert estimate_tokens(text) == expected


class TestKnowledgeBundle:
    """Tests for building and merging bundles."""

    def test_empty_bundle_is_unconfigured(self):
        bundle = KnowledgeBundle.empty()

        assert bundle.configured is False
        assert bundle.text == ""
        assert bundle.metadata.doc_count == 0

    def test_single_document_has_no_source_header(self):
        bundle = KnowledgeBundle.from_documents([("Policy", "  Refunds within 30 days. ")], 1000)

        assert bundle.configured is True
        assert bundle.text == "Refunds within 30 days."
        assert bundle.metadata.sources == ("Policy",)

    def test_multiple_documents_get_source_headers(self):
        bundle = KnowledgeBundle.from_documents([("A", "first"), ("B", "second")], 1000)

        assert bundle.text == "--- A ---\nfirst\n\n--- B ---\nsecond"
        assert bundle.metadata.doc_count == 2

    def test_blank_documents_are_dropped(self):
        bundle = KnowledgeBundle.from_documents([("A", "   "), ("B", "")], 1000)

        assert bundle.configured is False

    def test_utilization_metadata(self):
        bundle = KnowledgeBundle.from_documents([("A", "x" * 400)], capacity_tokens=1000)

        assert bundle.metadata.estimated_tokens == 100
        assert bundle.metadata.utilization_percent == 10.0

    def test_merge(self):
        a = KnowledgeBundle.from_documents([("A", "alpha")], 1000)
        b = KnowledgeBundle.from_documents([("B", "beta")], 1000)

        merged = a.merge(b, 1000)

        assert merged.text == "alpha\n\nbeta"
        assert merged.metadata.sources == ("A", "B")

    def test_merge_with_empty_returns_other(self):
        a = KnowledgeBundle.from_documents([("A", "alpha")], 1000)

        assert KnowledgeBundle.empty().merge(a, 1000) is a
        assert a.merge(KnowledgeBundle.empty(), 1000) is a


class TestAssemble:
    """Tests for prompt assembly order."""

    def test_full_order(self):
        global_kb = KnowledgeBundle.from_documents([("G", "org facts")], 1000)
        specific_kb = KnowledgeBundle.from_documents([("S", "task facts")], 1000)

        prompt = assemble("INSTRUCTIONS", global_kb, specific_kb, "TASK DATA")

        assert prompt == (
            "INSTRUCTIONS\n\n"
            f"{GLOBAL_KNOWLEDGE_HEADER}\norg facts\n\n"
            f"{SPECIFIC_KNOWLEDGE_HEADER}\ntask facts\n\n"
            "TASK DATA"
        )

    def test_unconfigured_bundles_add_nothing(self):
        prompt = assemble("BASE", KnowledgeBundle.empty(), None, "DATA")

        assert prompt == "BASE\n\nDATA"
        assert GLOBAL_KNOWLEDGE_HEADER not in prompt
        assert SPECIFIC_KNOWLEDGE_HEADER not in prompt

    def test_task_data_is_last(self):
        global_kb = KnowledgeBundle.from_documents([("G", "org facts")], 1000)

        prompt = assemble("BASE", global_kb, None, "DATA")

        assert prompt.endswith("DATA")
        assert prompt.index("BASE") < prompt.index("org facts") < prompt.index("DATA")


class TestLoadBundle:
    """Tests for loading bundles from a store."""

    @pytest.fixture
    def store(self):
        store = MagicMock()
        store.fetch_document.return_value = KnowledgeBundle.from_documents([("Doc", "doc text")], 1000)
        store.fetch_folder.return_value = KnowledgeBundle.from_documents(
            [("F1", "one"), ("F2", "two")], 1000
        )
        return store

    def test_unconfigured_ref_returns_empty(self, store):
        bundle = load_bundle(store, KnowledgeRef(), max_docs=10, capacity_tokens=1000)

        assert bundle.configured is False
        store.fetch_document.assert_not_called()
        store.fetch_folder.assert_not_called()

    def test_no_store_returns_empty(self):
        bundle = load_bundle(None, KnowledgeRef(document="doc-1"), max_docs=10, capacity_tokens=1000)

        assert bundle.configured is False

    def test_document_and_folder_are_merged(self, store):
        bundle = load_bundle(
            store, KnowledgeRef(document="doc-1", folder="folder-1"), max_docs=5, capacity_tokens=1000
        )

        store.fetch_document.assert_called_once_with("doc-1")
        store.fetch_folder.assert_called_once_with("folder-1", 5)
        assert bundle.metadata.sources == ("Doc", "F1", "F2")
        assert bundle.text.startswith("doc text")

    def test_warns_when_utilization_is_high(self, caplog):
        store = MagicMock()
        store.fetch_document.return_value = KnowledgeBundle.from_documents([("Big", "x" * 400)], 100)

        with caplog.at_level(logging.WARNING, logger="inbox_triage.knowledge.bundle"):
            bundle = load_bundle(store, KnowledgeRef(document="big"), 10, capacity_tokens=100)

        assert bundle.text == "x" * 400  # Not truncated
        assert any("100.0%" in r.message for r in caplog.records)

    def test_no_warning_below_threshold(self, store, caplog):
        with caplog.at_level(logging.WARNING, logger="inbox_triage.knowledge.bundle"):
            load_bundle(store, KnowledgeRef(document="doc-1"), 10, capacity_tokens=100000)

        assert not caplog.records
