"""Tests for YAML config loading and validation."""

import pytest
import yaml
from pydantic import ValidationError

from ces_mcmc.utils import config as config_module
from ces_mcmc.utils.config import (
    CESConfig,
    SamplerConfig,
    StepSearchConfig,
    get_config,
    load_config,
)


@pytest.fixture
def fresh_config_cache():
    get_config.cache_clear()
    yield
    get_config.cache_clear()


class TestDefaults:
    def test_step_search_defaults(self):
        cfg = StepSearchConfig()
        assert cfg.probe_length == 2000
        assert cfg.max_trials == 20
        assert (cfg.target_low, cfg.target_high) == (0.15, 0.35)
        assert cfg.damping == 0.75

    def test_sampler_defaults(self):
        cfg = SamplerConfig()
        assert cfg.algorithm == "rwm"
        assert cfg.svd is True
        assert cfg.truncate_svd == 1.0


class TestValidation:
    def test_band_must_be_ordered(self):
        with pytest.raises(ValidationError, match="target_low"):
            StepSearchConfig(target_low=0.4, target_high=0.3)

    @pytest.mark.parametrize("burnin", [100, 200])
    def test_burnin_must_be_below_max_iter(self, burnin):
        with pytest.raises(ValidationError, match="burnin"):
            SamplerConfig(max_iter=100, burnin=burnin)

    @pytest.mark.parametrize("field, value", [("damping", 1.5), ("grow", 0.5), ("shrink", 1.0)])
    def test_rescale_factors_bounded(self, field, value):
        with pytest.raises(ValidationError):
            StepSearchConfig(**{field: value})


class TestLoadConfig:
    def test_partial_file_keeps_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({"sampler": {"max_iter": 5000, "burnin": 500}}))
        cfg = load_config(path)
        assert cfg.sampler.max_iter == 5000
        assert cfg.sampler.burnin == 500
        assert cfg.step_search == StepSearchConfig()

    def test_empty_file_is_all_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert load_config(path) == CESConfig()

    def test_non_mapping_rejected(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ValueError, match="mapping"):
            load_config(path)

    def test_repository_config_parses(self):
        cfg = load_config(config_module.DEFAULT_CONFIG_PATH)
        assert cfg.sampler.algorithm == "rwm"
        assert cfg.step_search.max_trials == 20


class TestGetConfig:
    def test_env_var_overrides_default_path(self, tmp_path, monkeypatch, fresh_config_cache):
        path = tmp_path / "custom.yaml"
        path.write_text(yaml.safe_dump({"step_search": {"probe_length": 123}}))
        monkeypatch.setenv(config_module.CONFIG_ENV_VAR, str(path))
        assert get_config().step_search.probe_length == 123

    def test_falls_back_to_defaults(self, tmp_path, monkeypatch, fresh_config_cache):
        monkeypatch.delenv(config_module.CONFIG_ENV_VAR, raising=False)
        monkeypatch.setattr(config_module, "DEFAULT_CONFIG_PATH", tmp_path / "missing.yaml")
        assert get_config() == CESConfig()

    def test_cached(self, monkeypatch, fresh_config_cache):
        monkeypatch.delenv(config_module.CONFIG_ENV_VAR, raising=False)
        assert get_config() is get_config()
