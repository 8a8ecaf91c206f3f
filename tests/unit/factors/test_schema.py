"""Tests for factor rules loading and validation."""

import pytest

from mfa_guard.common.exceptions import ConfigurationError
from mfa_guard.factors.schema import FactorRules, load_factor_rules


VALID_YAML = """\
metadata:
  version: "1.2.0"
  description: Test factors
factors:
  auth:
    weight: 50
  totp:
    weight: 100
    requires_setup: true
  iprange:
    weight: 50
    enabled: false
  email:
    weight: 50
"""


@pytest.fixture
def factor_file(tmp_path):
    path = tmp_path / "factors.yaml"
    path.write_text(VALID_YAML)
    return path


class TestLoadFactorRules:
    """Tests for load_factor_rules."""

    def test_loads_valid_file(self, factor_file):
        rules = load_factor_rules(factor_file)
        assert rules.version == "1.2.0"
        assert rules.metadata.description == "Test factors"
        assert set(rules.factors) == {"auth", "totp", "iprange", "email"}

    def test_accepts_string_path(self, factor_file):
        assert load_factor_rules(str(factor_file)).version == "1.2.0"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError) as exc_info:
            load_factor_rules(tmp_path / "absent.yaml")
        assert exc_info.value.code == "CONFIG_ERROR"

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "factors.yaml"
        path.write_text("metadata: [unclosed\n")
        with pytest.raises(ConfigurationError, match="not valid YAML"):
            load_factor_rules(path)

    def test_negative_weight_rejected(self, tmp_path):
        path = tmp_path / "factors.yaml"
        path.write_text('metadata:\n  version: "1"\nfactors:\n  auth:\n    weight: -5\n')
        with pytest.raises(ConfigurationError) as exc_info:
            load_factor_rules(path)
        assert exc_info.value.details["errors"]

    def test_invalid_factor_name_rejected(self, tmp_path):
        path = tmp_path / "factors.yaml"
        path.write_text('metadata:\n  version: "1"\nfactors:\n  Bad-Name:\n    weight: 5\n')
        with pytest.raises(ConfigurationError):
            load_factor_rules(path)

    def test_missing_metadata_rejected(self, tmp_path):
        path = tmp_path / "factors.yaml"
        path.write_text("factors:\n  auth:\n    weight: 50\n")
        with pytest.raises(ConfigurationError):
            load_factor_rules(path)

    def test_bundled_factor_file_loads(self):
        from mfa_guard.common.config import Config

        rules = load_factor_rules(Config().config_dir / "factors.yaml")
        assert "auth" in rules.factors


class TestDescriptors:
    """Tests for FactorRules.descriptors."""

    def test_enabled_only_in_file_order(self, factor_file):
        descriptors = load_factor_rules(factor_file).descriptors()
        assert [d.name for d in descriptors] == ["auth", "totp", "email"]

    def test_include_disabled(self, factor_file):
        descriptors = load_factor_rules(factor_file).descriptors(enabled_only=False)
        assert [d.name for d in descriptors] == ["auth", "totp", "iprange", "email"]

    def test_settings_carried_over(self, factor_file):
        totp = load_factor_rules(factor_file).descriptors()[1]
        assert totp.weight == 100
        assert totp.requires_setup is True

    def test_defaults(self):
        rules = FactorRules.model_validate({
            "metadata": {"version": "1"},
            "factors": {"auth": {"weight": 50}},
        })
        settings = rules.factors["auth"]
        assert settings.enabled is True
        assert settings.requires_setup is False
