"""Tests for probe configuration."""

import json

import pytest

from visitprobe.config import LoginConfig, ProbeConfig
from visitprobe.exceptions import ConfigurationError


PROBE_VARS = [
    "PROBE_URLS_PATH",
    "PROBE_ARTIFACT_DIR",
    "PROBE_MAX_ATTEMPTS",
    "PROBE_BACKOFF_BASE",
    "PROBE_BACKOFF_JITTER",
    "PROBE_VISIT_GAP_MIN",
    "PROBE_VISIT_GAP_MAX",
    "PROBE_SETTLE_SECONDS",
    "PROBE_MIN_BODY_LENGTH",
    "PROBE_SUCCESS_POLICY",
    "PROBE_CAPTURE_FAILURE_SCREENSHOTS",
    "PROBE_LOGIN_URL",
    "PROBE_LOGIN_ID",
    "PROBE_LOGIN_PASSCODE",
    "PROBE_SECOND_FACTOR_WAIT",
]


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every PROBE_ variable a developer .env may have set."""
    for name in PROBE_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestProbeConfigDefaults:
    """Tests for default values and validation."""

    def test_defaults(self):
        """Test default configuration values."""
        config = ProbeConfig()

        assert config.max_attempts == 4
        assert config.backoff_base == 1.0
        assert config.backoff_jitter == 0.5
        assert config.visit_gap_min == 1.2
        assert config.visit_gap_max == 4.0
        assert config.min_body_length == 1200
        assert config.success_policy == "permissive"
        assert config.login is None
        assert config.has_credentials is False

    def test_frozen(self):
        """Test that settings cannot change after construction."""
        config = ProbeConfig()

        with pytest.raises(AttributeError):
            config.max_attempts = 10

    @pytest.mark.parametrize("changes", [
        {"max_attempts": 0},
        {"backoff_base": -1},
        {"visit_gap_min": 5.0, "visit_gap_max": 1.0},
        {"min_body_length": -5},
        {"success_policy": "optimistic"},
    ])
    def test_invalid_values(self, changes):
        """Test that invalid settings raise ConfigurationError."""
        with pytest.raises(ConfigurationError):
            ProbeConfig(**changes)

    def test_with_overrides_ignores_none(self):
        """Test that unset CLI flags keep existing values."""
        config = ProbeConfig(max_attempts=6).with_overrides(max_attempts=None, urls_path="stores.csv")

        assert config.max_attempts == 6
        assert config.urls_path == "stores.csv"

    def test_to_dict_has_no_secrets(self):
        """Test that the serialized settings omit the passcode."""
        login = LoginConfig(url="https://example.com/login", identifier="ops", passcode="hunter2")
        data = ProbeConfig(login=login).to_dict()

        assert "hunter2" not in json.dumps(data)
        assert data["login_url"] == "https://example.com/login"
        assert "hunter2" not in repr(login)


class TestFromEnv:
    """Tests for ProbeConfig.from_env."""

    def test_reads_prefixed_variables(self, clean_env):
        """Test typed values from PROBE_ variables."""
        clean_env.setenv("PROBE_MAX_ATTEMPTS", "6")
        clean_env.setenv("PROBE_BACKOFF_BASE", "0.25")
        clean_env.setenv("PROBE_SUCCESS_POLICY", "status_only")
        clean_env.setenv("PROBE_CAPTURE_FAILURE_SCREENSHOTS", "yes")

        config = ProbeConfig.from_env()

        assert config.max_attempts == 6
        assert config.backoff_base == 0.25
        assert config.success_policy == "status_only"
        assert config.capture_failure_screenshots is True
        assert config.login is None

    def test_invalid_number(self, clean_env):
        """Test a non-numeric attempt count."""
        clean_env.setenv("PROBE_MAX_ATTEMPTS", "many")

        with pytest.raises(ConfigurationError, match="PROBE_MAX_ATTEMPTS"):
            ProbeConfig.from_env()

    def test_login_requires_both_secrets(self, clean_env):
        """Test that a lone identifier does not enable login."""
        clean_env.setenv("PROBE_LOGIN_ID", "ops@example.com")

        assert ProbeConfig.from_env().has_credentials is False

    def test_login_from_env(self, clean_env):
        """Test login settings when both secrets are present."""
        clean_env.setenv("PROBE_LOGIN_URL", "https://accounts.example.com/login")
        clean_env.setenv("PROBE_LOGIN_ID", "ops@example.com")
        clean_env.setenv("PROBE_LOGIN_PASSCODE", "hunter2")
        clean_env.setenv("PROBE_SECOND_FACTOR_WAIT", "90")

        config = ProbeConfig.from_env()

        assert config.has_credentials is True
        assert config.login.url == "https://accounts.example.com/login"
        assert config.login.second_factor_wait == 90.0

    def test_login_without_url(self, clean_env):
        """Test that credentials without a login URL are rejected."""
        clean_env.setenv("PROBE_LOGIN_ID", "ops@example.com")
        clean_env.setenv("PROBE_LOGIN_PASSCODE", "hunter2")

        with pytest.raises(ConfigurationError, match="PROBE_LOGIN_URL"):
            ProbeConfig.from_env()


class TestFromFile:
    """Tests for ProbeConfig.from_file."""

    def test_json_file(self, tmp_path):
        """Test settings from a JSON file."""
        path = tmp_path / "probe.json"
        path.write_text(json.dumps({"max_attempts": 2, "min_body_length": 600, "unknown": 1}))

        config = ProbeConfig.from_file(str(path))

        assert config.max_attempts == 2
        assert config.min_body_length == 600

    def test_yaml_file_with_probe_section(self, tmp_path):
        """Test settings nested under a probe key in YAML."""
        path = tmp_path / "probe.yaml"
        path.write_text("probe:\n  success_policy: status_and_body\n  visit_gap_max: 6.5\n")

        config = ProbeConfig.from_file(str(path))

        assert config.success_policy == "status_and_body"
        assert config.visit_gap_max == 6.5

    def test_file_overlays_base(self, tmp_path):
        """Test that file values replace only what they name."""
        path = tmp_path / "probe.yml"
        path.write_text("max_attempts: 3\n")
        base = ProbeConfig(urls_path="stores.csv", max_attempts=8)

        config = ProbeConfig.from_file(str(path), base=base)

        assert config.urls_path == "stores.csv"
        assert config.max_attempts == 3

    def test_missing_file_returns_base(self, tmp_path):
        """Test that a missing file keeps the base configuration."""
        base = ProbeConfig(max_attempts=5)

        assert ProbeConfig.from_file(str(tmp_path / "nope.json"), base=base) is base

    def test_string_values_are_converted(self, tmp_path):
        """Test quoted numbers and flags in a JSON file get their field types."""
        path = tmp_path / "probe.json"
        path.write_text(json.dumps({
            "max_attempts": "3",
            "visit_gap_max": 5,
            "capture_failure_screenshots": "yes",
        }))

        config = ProbeConfig.from_file(str(path))

        assert config.max_attempts == 3
        assert config.visit_gap_max == 5.0
        assert isinstance(config.visit_gap_max, float)
        assert config.capture_failure_screenshots is True

    @pytest.mark.parametrize("settings", [
        {"visit_gap_min": "fast"},
        {"max_attempts": 2.5},
        {"max_attempts": True},
        {"backoff_base": [1, 2]},
    ])
    def test_invalid_values_raise_configuration_error(self, tmp_path, settings):
        """Test values that cannot become the field type."""
        path = tmp_path / "probe.json"
        path.write_text(json.dumps(settings))

        with pytest.raises(ConfigurationError, match="probe.json"):
            ProbeConfig.from_file(str(path))

    def test_empty_probe_section(self, tmp_path):
        """Test a YAML file whose probe key has no settings."""
        path = tmp_path / "probe.yaml"
        path.write_text("probe:\n")

        assert ProbeConfig.from_file(str(path)) == ProbeConfig()

    def test_probe_section_must_be_mapping(self, tmp_path):
        """Test a probe key holding a list."""
        path = tmp_path / "probe.yaml"
        path.write_text("probe:\n  - max_attempts\n")

        with pytest.raises(ConfigurationError, match="mapping"):
            ProbeConfig.from_file(str(path))

    def test_null_setting_keeps_base(self, tmp_path):
        """Test a setting left empty in YAML."""
        path = tmp_path / "probe.yaml"
        path.write_text("max_attempts:\nmin_body_length: 900\n")

        config = ProbeConfig.from_file(str(path), base=ProbeConfig(max_attempts=7))

        assert config.max_attempts == 7
        assert config.min_body_length == 900

    def test_malformed_json(self, tmp_path):
        """Test a file that is not valid JSON."""
        path = tmp_path / "probe.json"
        path.write_text("{max_attempts: 3")

        with pytest.raises(ConfigurationError, match="Cannot parse"):
            ProbeConfig.from_file(str(path))

    def test_non_mapping_rejected(self, tmp_path):
        """Test a YAML list instead of a mapping."""
        path = tmp_path / "probe.yaml"
        path.write_text("- 1\n- 2\n")

        with pytest.raises(ConfigurationError):
            ProbeConfig.from_file(str(path))
