"""
Tests for Configuration Management.

Covers the Config dataclasses, validation, ${VAR} expansion, YAML
loading and the CHUNKFORGE_* environment overrides.

Organization
------------
- TestConfigDefaults: Default values
- TestConfigValidation: Rejected values
- TestExpandEnvVars: Environment variable expansion
- TestLoadConfig: YAML loading and saving
- TestEnvOverrides: CHUNKFORGE_* variables
- TestToOptions: Conversion to ChunkingOptions
"""

import os

import pytest
import yaml

from chunkforge.core.config import (
    ChunkingConfig,
    CompletionConfig,
    Config,
    SelectionConfig,
    expand_env_vars,
    load_config,
    save_config,
)
from chunkforge.core.exceptions import ConfigValidationError, InvalidOptionsError

ENV_VARS = (
    "CHUNKFORGE_STRATEGY",
    "CHUNKFORGE_MAX_CHUNK_SIZE",
    "CHUNKFORGE_OVERLAP_SIZE",
    "CHUNKFORGE_LANGUAGE",
    "CHUNKFORGE_LLM_PROVIDER",
    "CHUNKFORGE_LLM_MODEL",
    "CHUNKFORGE_LLM_URL",
    "CHUNKFORGE_MAX_ANALYSIS_TIME",
    "CHUNKFORGE_LOG_LEVEL",
    "OLLAMA_HOST",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's own CHUNKFORGE_* settings out of the tests."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def write_yaml(path, data):
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


# ============================================================================
# Test Classes
# ============================================================================


class TestConfigDefaults:
    def test_default_values(self):
        config = Config()

        assert config.chunking.strategy == "Auto"
        assert config.chunking.max_chunk_size == 512
        assert config.chunking.overlap_size == 64
        assert config.chunking.min_chunk_size is None
        assert config.selection.max_analysis_time_seconds == 5.0
        assert config.llm.provider == "none"
        assert config.logging.level == "INFO"

    def test_to_dict_skips_private_fields(self):
        data = Config().to_dict()

        assert set(data) == {"chunking", "selection", "llm", "logging"}
        assert data["chunking"]["strategy"] == "Auto"

    def test_log_file_path(self, temp_dir):
        config = Config.from_dict({"logging": {"file": "logs/run.log"}}, temp_dir)

        assert config.log_file_path == temp_dir / "logs" / "run.log"
        assert Config().log_file_path is None


class TestConfigValidation:
    """Invalid values raise ConfigValidationError naming the field."""

    @pytest.mark.parametrize(
        "chunking,field",
        [
            (ChunkingConfig(max_chunk_size=0), "chunking.max_chunk_size"),
            (ChunkingConfig(min_chunk_size=600), "chunking.min_chunk_size"),
            (ChunkingConfig(overlap_size=512), "chunking.overlap_size"),
            (ChunkingConfig(overlap_size=-1), "chunking.overlap_size"),
            (ChunkingConfig(importance_threshold=2.0), "chunking.importance_threshold"),
        ],
    )
    def test_invalid_chunking(self, chunking, field):
        with pytest.raises(ConfigValidationError) as exc_info:
            Config(chunking=chunking)
        assert exc_info.value.field == field

    def test_invalid_selection(self):
        with pytest.raises(ConfigValidationError) as exc_info:
            Config(selection=SelectionConfig(min_confidence=1.5))
        assert exc_info.value.field == "selection.min_confidence"

    def test_unknown_provider(self):
        with pytest.raises(ConfigValidationError) as exc_info:
            Config(llm=CompletionConfig(provider="openai"))
        assert exc_info.value.value == "openai"

    def test_from_dict_validates(self):
        with pytest.raises(ConfigValidationError):
            Config.from_dict({"chunking": {"max_chunk_size": -5}})


class TestExpandEnvVars:
    """Tests for ${VAR} and ${VAR:default} expansion."""

    def test_simple_expansion(self, monkeypatch):
        monkeypatch.setenv("CF_TEST_MODEL", "llama3")

        assert expand_env_vars("${CF_TEST_MODEL}") == "llama3"

    def test_default_value(self):
        assert expand_env_vars("${CF_TEST_UNSET:qwen2.5:14b}") == "qwen2.5:14b"

    def test_missing_var_empty_string(self):
        assert "CF_TEST_UNSET" not in os.environ
        assert expand_env_vars("model-${CF_TEST_UNSET}") == "model-"

    def test_nested_structures(self, monkeypatch):
        monkeypatch.setenv("CF_TEST_HOST", "gpu-box")
        data = {"llm": {"url": "http://${CF_TEST_HOST}:11434"}, "tags": ["${CF_TEST_HOST}", 3]}

        result = expand_env_vars(data)

        assert result == {"llm": {"url": "http://gpu-box:11434"}, "tags": ["gpu-box", 3]}

    def test_non_strings_unchanged(self):
        assert expand_env_vars(42) == 42
        assert expand_env_vars(None) is None


class TestLoadConfig:
    def test_load_from_file(self, temp_dir):
        path = write_yaml(
            temp_dir / "chunkforge.yaml",
            {
                "chunking": {"strategy": "Smart", "max_chunk_size": 384, "overlap_size": 48},
                "selection": {"prefer_quality": True},
                "unknown_section": {"ignored": True},
            },
        )

        config = load_config(path, temp_dir)

        assert config.chunking.strategy == "Smart"
        assert config.chunking.max_chunk_size == 384
        assert config.selection.prefer_quality is True
        assert config.base_path == temp_dir

    def test_unknown_keys_ignored(self, temp_dir):
        path = write_yaml(temp_dir / "chunkforge.yaml", {"chunking": {"colour": "blue"}})

        assert load_config(path, temp_dir).chunking.strategy == "Auto"

    def test_found_in_base_path(self, temp_dir):
        write_yaml(temp_dir / "config.yaml", {"chunking": {"strategy": "Paragraph"}})

        assert load_config(base_path=temp_dir).chunking.strategy == "Paragraph"

    def test_missing_file_uses_defaults(self, temp_dir):
        config = load_config(temp_dir / "absent.yaml", temp_dir)

        assert config.chunking.strategy == "Auto"
        assert config.base_path == temp_dir

    def test_non_mapping_uses_defaults(self, temp_dir):
        path = temp_dir / "chunkforge.yaml"
        path.write_text("- just\n- a list\n", encoding="utf-8")

        assert load_config(path, temp_dir).chunking.max_chunk_size == 512

    def test_broken_yaml_uses_defaults(self, temp_dir):
        path = temp_dir / "chunkforge.yaml"
        path.write_text("chunking: [unclosed\n", encoding="utf-8")

        assert load_config(path, temp_dir).chunking.strategy == "Auto"

    def test_env_expansion_in_file(self, temp_dir, monkeypatch):
        monkeypatch.setenv("CF_TEST_MODEL", "mistral")
        path = temp_dir / "chunkforge.yaml"
        path.write_text("llm:\n  model: ${CF_TEST_MODEL:llama3}\n", encoding="utf-8")

        assert load_config(path, temp_dir).llm.model == "mistral"

    def test_save_and_reload(self, temp_dir):
        config = Config(chunking=ChunkingConfig(strategy="Semantic", max_chunk_size=256))
        config._base_path = temp_dir

        path = save_config(config)
        reloaded = load_config(path, temp_dir)

        assert path == temp_dir / "chunkforge.yaml"
        assert reloaded.to_dict() == config.to_dict()


class TestEnvOverrides:
    """CHUNKFORGE_* variables win over file values."""

    def test_strategy_canonical_spelling(self, temp_dir, monkeypatch):
        monkeypatch.setenv("CHUNKFORGE_STRATEGY", "intelligent")

        assert load_config(base_path=temp_dir).chunking.strategy == "Intelligent"

    def test_unknown_strategy_ignored(self, temp_dir, monkeypatch):
        monkeypatch.setenv("CHUNKFORGE_STRATEGY", "Legal")

        assert load_config(base_path=temp_dir).chunking.strategy == "Auto"

    def test_env_beats_file(self, temp_dir, monkeypatch):
        path = write_yaml(temp_dir / "chunkforge.yaml", {"chunking": {"max_chunk_size": 384}})
        monkeypatch.setenv("CHUNKFORGE_MAX_CHUNK_SIZE", "1024")

        assert load_config(path, temp_dir).chunking.max_chunk_size == 1024

    def test_sizes_clamped(self, temp_dir, monkeypatch):
        monkeypatch.setenv("CHUNKFORGE_MAX_CHUNK_SIZE", "4")

        assert load_config(base_path=temp_dir).chunking.max_chunk_size == 16

    def test_overlap_kept_below_max(self, temp_dir, monkeypatch):
        monkeypatch.setenv("CHUNKFORGE_OVERLAP_SIZE", "1000")

        assert load_config(base_path=temp_dir).chunking.overlap_size == 511

    def test_invalid_integer_ignored(self, temp_dir, monkeypatch):
        monkeypatch.setenv("CHUNKFORGE_MAX_CHUNK_SIZE", "lots")

        assert load_config(base_path=temp_dir).chunking.max_chunk_size == 512

    def test_language_pattern(self, temp_dir, monkeypatch):
        monkeypatch.setenv("CHUNKFORGE_LANGUAGE", "zh-CN")
        assert load_config(base_path=temp_dir).chunking.language == "zh-CN"

        monkeypatch.setenv("CHUNKFORGE_LANGUAGE", "../etc")
        assert load_config(base_path=temp_dir).chunking.language == "auto"

    def test_llm_settings(self, temp_dir, monkeypatch):
        monkeypatch.setenv("CHUNKFORGE_LLM_PROVIDER", "OLLAMA")
        monkeypatch.setenv("CHUNKFORGE_LLM_MODEL", "llama3.1:8b")
        monkeypatch.setenv("OLLAMA_HOST", "http://gpu-box:11434/")

        llm = load_config(base_path=temp_dir).llm

        assert llm.provider == "ollama"
        assert llm.model == "llama3.1:8b"
        assert llm.url == "http://gpu-box:11434"

    def test_llm_url_takes_precedence(self, temp_dir, monkeypatch):
        monkeypatch.setenv("CHUNKFORGE_LLM_URL", "http://primary:11434")
        monkeypatch.setenv("OLLAMA_HOST", "http://secondary:11434")

        assert load_config(base_path=temp_dir).llm.url == "http://primary:11434"

    def test_analysis_time_and_log_level(self, temp_dir, monkeypatch):
        monkeypatch.setenv("CHUNKFORGE_MAX_ANALYSIS_TIME", "1.5")
        monkeypatch.setenv("CHUNKFORGE_LOG_LEVEL", "debug")

        config = load_config(base_path=temp_dir)

        assert config.selection.max_analysis_time_seconds == 1.5
        assert config.logging.level == "DEBUG"


class TestToOptions:
    """ChunkingConfig.to_options() builds validated ChunkingOptions."""

    def test_defaults(self):
        options = ChunkingConfig().to_options()

        assert options.strategy_name == "Auto"
        assert options.max_chunk_size == 512
        assert options.language is None
        assert options.option("max_analysis_time_seconds") == 5.0

    def test_selection_copied(self):
        options = ChunkingConfig().to_options(SelectionConfig(prefer_quality=True, sample_tokens=500))

        assert options.option("prefer_quality") is True
        assert options.option("sample_tokens") == 500

    def test_overrides(self):
        options = ChunkingConfig(language="de").to_options(
            None,
            strategy="Smart",
            max_chunk_size=200,
            overlap_size=None,
            prefer_speed=True,
        )

        assert options.strategy_name == "Smart"
        assert options.max_chunk_size == 200
        assert options.overlap_size == 64
        assert options.language == "de"
        assert options.option("prefer_speed") is True

    def test_language_override(self):
        options = ChunkingConfig(language="de").to_options(language="ko")

        assert options.language == "ko"

    def test_invalid_override_rejected(self):
        with pytest.raises(InvalidOptionsError):
            ChunkingConfig().to_options(overlap_size=600)
