"""Tests for environment-driven settings."""

import pytest
from pydantic import ValidationError

from coderag.config.settings import CodeRAGSettings


class TestCodeRAGSettings:
    def test_defaults(self):
        settings = CodeRAGSettings()
        assert settings.entity_batch_size == 100
        assert settings.relationship_batch_size == 100
        assert settings.search_limit == 100
        assert settings.list_limit == 1000
        assert settings.lcom_strategy == "pairwise"
        assert settings.database_dir.name == "code_graph"

    def test_environment_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("CODERAG_DB_PATH", str(tmp_path))
        monkeypatch.setenv("CODERAG_ENTITY_BATCH_SIZE", "25")
        monkeypatch.setenv("CODERAG_LCOM_STRATEGY", "lcom4")
        monkeypatch.setenv("CODERAG_LOG_LEVEL", "debug")

        settings = CodeRAGSettings()
        assert settings.db_path == tmp_path
        assert settings.entity_batch_size == 25
        assert settings.lcom_strategy == "lcom4"
        assert settings.log_level == "DEBUG"

    def test_rejects_bad_values(self):
        with pytest.raises(ValidationError):
            CodeRAGSettings(entity_batch_size=0)
        with pytest.raises(ValidationError):
            CodeRAGSettings(lcom_strategy="lcom9")

    def test_thresholds_next_to_database(self, tmp_path):
        (tmp_path / "thresholds.yaml").write_text("classes:\n  cbo: 3\n")
        settings = CodeRAGSettings(db_path=tmp_path)
        assert settings.load_thresholds().classes.cbo == 3

    def test_explicit_thresholds_path(self, tmp_path):
        path = tmp_path / "custom.yaml"
        path.write_text("classes:\n  noc: 2\n")
        settings = CodeRAGSettings(db_path=tmp_path / "db", thresholds_path=path)
        assert settings.load_thresholds().classes.noc == 2
