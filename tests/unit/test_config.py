"""Unit tests for Settings and pipeline configuration layering."""

from __future__ import annotations

from pathlib import Path

import pytest

from essayvec.config.loader import load_pipeline_config, load_yaml
from essayvec.config.settings import Settings
from essayvec.models.pipeline import PipelineConfig
from essayvec.utils.errors import ConfigurationError

_PIPELINE_ENV_VARS = (
    "CHUNK_TOKEN_BUDGET",
    "MAX_CONCURRENT_EMBEDDINGS",
    "DISPATCH_INTERVAL",
    "UPSERT_BATCH_SIZE",
    "DOCUMENT_LIMIT",
    "PLAIN_TEXT_MODE",
    "URL_DENYLIST",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch) -> None:
    for name in _PIPELINE_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def _write_yaml(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(text, encoding="utf-8")
    return path


def _settings(**values) -> Settings:
    return Settings(_env_file=None, **values)


class TestLoadPipelineConfig:
    def test_missing_file_gives_defaults(self, tmp_path) -> None:
        config = load_pipeline_config(tmp_path / "absent.yaml", _settings())
        assert config == PipelineConfig()

    def test_yaml_overrides_defaults(self, tmp_path) -> None:
        path = _write_yaml(
            tmp_path,
            "pipeline:\n  chunk_token_budget: 300\n  dispatch_interval: 1.5\n  url_denylist: [about, notes]\n",
        )

        config = load_pipeline_config(path, _settings())

        assert config.chunk_token_budget == 300
        assert config.dispatch_interval == 1.5
        assert config.url_denylist == ("about", "notes")
        assert config.max_concurrent_embeddings == 3

    def test_environment_beats_yaml(self, tmp_path, monkeypatch) -> None:
        path = _write_yaml(tmp_path, "pipeline:\n  chunk_token_budget: 300\n")
        monkeypatch.setenv("CHUNK_TOKEN_BUDGET", "150")

        config = load_pipeline_config(path, _settings())

        assert config.chunk_token_budget == 150

    def test_overrides_beat_everything(self, tmp_path) -> None:
        path = _write_yaml(tmp_path, "pipeline:\n  document_limit: 10\n")

        config = load_pipeline_config(path, _settings(document_limit=20), document_limit=3, plain_text_mode=None)

        assert config.document_limit == 3
        assert config.plain_text_mode is False

    def test_unknown_key_rejected(self, tmp_path) -> None:
        path = _write_yaml(tmp_path, "pipeline:\n  chunk_budget: 300\n")

        with pytest.raises(ConfigurationError, match="chunk_budget"):
            load_pipeline_config(path, _settings())

    def test_invalid_value_rejected(self, tmp_path) -> None:
        path = _write_yaml(tmp_path, "pipeline:\n  upsert_batch_size: 0\n")

        with pytest.raises(ConfigurationError):
            load_pipeline_config(path, _settings())

    def test_non_mapping_yaml_rejected(self, tmp_path) -> None:
        path = _write_yaml(tmp_path, "- just\n- a list\n")

        with pytest.raises(ConfigurationError):
            load_yaml(path)

    def test_repository_config_matches_defaults(self) -> None:
        repo_config = Path(__file__).resolve().parents[2] / "config" / "config.yaml"
        assert load_pipeline_config(repo_config, _settings()) == PipelineConfig()


class TestSettings:
    def test_missing_credentials_chromadb(self) -> None:
        settings = _settings(openai_api_key="", store_backend="chromadb")
        assert settings.missing_credentials() == ["OPENAI_API_KEY"]

    def test_missing_credentials_supabase(self) -> None:
        settings = _settings(openai_api_key="sk", store_backend="supabase", supabase_url="https://p.supabase.co")
        assert settings.missing_credentials() == ["SUPABASE_SERVICE_ROLE_KEY"]

    def test_nothing_missing(self) -> None:
        settings = _settings(
            openai_api_key="sk",
            store_backend="supabase",
            supabase_url="https://p.supabase.co",
            supabase_service_role_key="key",
        )
        assert settings.missing_credentials() == []
