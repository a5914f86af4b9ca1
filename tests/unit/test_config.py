"""Unit tests for settings, connection config and per-call options."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from bulk_indexer.config import IndexerConfig, IndexingOpts, Settings


class TestSettings:
    def test_reads_environment(self, monkeypatch) -> None:
        monkeypatch.setenv("ES_SERVERS", '["https://es-0:9200","https://es-1:9200"]')
        monkeypatch.setenv("ES_INDEX", "Events")
        monkeypatch.setenv("BULK_FLUSH_ITEMS", "500")

        source = Settings()
        assert source.es_servers == ["https://es-0:9200", "https://es-1:9200"]
        assert source.es_index == "Events"
        assert source.bulk_flush_items == 500


class TestIndexerConfig:
    def test_from_settings(self) -> None:
        source = Settings(es_servers=["https://es:9200"], es_index="Events", es_insecure_skip_verify=True)
        config = IndexerConfig.from_settings(source)
        assert config == IndexerConfig(index="Events", servers=["https://es:9200"], insecure_skip_verify=True)

    def test_from_settings_uses_module_settings(self, monkeypatch) -> None:
        monkeypatch.setattr("bulk_indexer.config.settings", Settings(es_index="fallback"))
        assert IndexerConfig.from_settings().index == "fallback"


class TestIndexingOpts:
    def test_resolved_fills_unset_fields(self) -> None:
        source = Settings(bulk_flush_bytes=1024, bulk_flush_items=10, bulk_num_workers=2, bulk_timeout_seconds=5.0)
        opts = IndexingOpts(num_workers=8).resolved(source)
        assert opts == IndexingOpts(flush_bytes=1024, flush_items=10, num_workers=8, timeout_seconds=5.0)

    def test_zero_flush_items_is_kept(self) -> None:
        source = Settings(bulk_flush_items=10)
        assert IndexingOpts(flush_items=0).resolved(source).flush_items == 0

    @pytest.mark.parametrize(
        "kwargs",
        [{"flush_bytes": 0}, {"flush_items": -1}, {"num_workers": 0}, {"timeout_seconds": 0}],
    )
    def test_invalid_values_rejected(self, kwargs) -> None:
        with pytest.raises(ValidationError):
            IndexingOpts(**kwargs)
