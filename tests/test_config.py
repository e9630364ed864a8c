"""
Tests for the configuration module.
"""

import re
import tempfile
from pathlib import Path

import pytest

from contributor_quality.config import (
    DEFAULT_CONFIG,
    DEFAULT_WEIGHTS,
    MetricWeights,
    get_verify_ssl,
    load_config,
    merge_thresholds,
    merge_weights,
    set_verify_ssl,
    validate_config,
    validate_weights,
)

ENV_VARS = (
    "CONTRIBUTOR_QUALITY_MINIMUM_SCORE",
    "CONTRIBUTOR_QUALITY_MINIMUM_STARS",
    "CONTRIBUTOR_QUALITY_ANALYSIS_WINDOW",
    "CONTRIBUTOR_QUALITY_NEW_ACCOUNT_DAYS",
    "CONTRIBUTOR_QUALITY_TRUSTED_USERS",
    "CONTRIBUTOR_QUALITY_TRUSTED_ORGS",
)


@pytest.fixture
def temp_project_root(monkeypatch):
    """Create a temporary project root for testing."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)

    with tempfile.TemporaryDirectory() as tmpdir:
        tmpdir_path = Path(tmpdir)

        # Patch PROJECT_ROOT
        import contributor_quality.config

        original_root = contributor_quality.config.PROJECT_ROOT
        contributor_quality.config.PROJECT_ROOT = tmpdir_path

        yield tmpdir_path

        # Restore
        contributor_quality.config.PROJECT_ROOT = original_root


def test_defaults_without_config_files(temp_project_root):
    """Test defaults are used when no config file exists."""
    assert load_config() == DEFAULT_CONFIG


def test_default_weights_sum_to_one():
    """Test the default weights are balanced."""
    assert validate_weights(DEFAULT_WEIGHTS) is True
    assert validate_weights(MetricWeights(prMergeRate=0.5)) is False


def test_load_from_local_config(temp_project_root):
    """Test loading settings from .contributor-quality.toml."""
    config_file = temp_project_root / ".contributor-quality.toml"
    config_file.write_text(
        """
[tool.contributor-quality]
minimum-score = 450
analysis-window = 6
mode = "threshold"
required-metrics = ["prMergeRate"]
trusted-users = ["release-bot"]

[tool.contributor-quality.weights]
prMergeRate = 0.3
repoQuality = 0.05

[tool.contributor-quality.thresholds]
accountAge = 90
"""
    )

    config = load_config()
    assert config.minimum_score == 450
    assert config.analysis_window_months == 6
    assert config.scoring_mode == "threshold"
    assert config.required_metrics == ("prMergeRate",)
    assert config.trusted_users == ("release-bot",)
    assert config.weights.prMergeRate == 0.3
    assert config.weights.repoQuality == 0.05
    assert config.weights.codeReviews == DEFAULT_WEIGHTS.codeReviews
    assert config.thresholds.accountAge == 90


def test_load_from_pyproject(temp_project_root):
    """Test loading settings from pyproject.toml."""
    (temp_project_root / "pyproject.toml").write_text(
        """
[tool.contributor-quality]
minimum-stars = 500
"""
    )
    assert load_config().minimum_stars == 500


def test_local_config_takes_priority(temp_project_root):
    """Test that .contributor-quality.toml takes priority over pyproject.toml."""
    (temp_project_root / "pyproject.toml").write_text(
        """
[tool.contributor-quality]
minimum-stars = 500
"""
    )
    (temp_project_root / ".contributor-quality.toml").write_text(
        """
[tool.contributor-quality]
minimum-stars = 50
"""
    )
    assert load_config().minimum_stars == 50


def test_explicit_config_path(temp_project_root):
    """Test an explicit config path is used."""
    config_file = temp_project_root / "custom.toml"
    config_file.write_text(
        """
[tool.contributor-quality]
new-account-threshold-days = 60
"""
    )
    assert load_config(config_file).new_account_threshold_days == 60


def test_missing_explicit_config_path(temp_project_root):
    """Test a missing explicit config path fails."""
    with pytest.raises(ValueError, match="Config file not found"):
        load_config(temp_project_root / "missing.toml")


def test_environment_overrides_files(temp_project_root, monkeypatch):
    """Test environment variables override config files."""
    (temp_project_root / ".contributor-quality.toml").write_text(
        """
[tool.contributor-quality]
minimum-score = 450
"""
    )
    monkeypatch.setenv("CONTRIBUTOR_QUALITY_MINIMUM_SCORE", "600")
    monkeypatch.setenv("CONTRIBUTOR_QUALITY_TRUSTED_ORGS", "octo-org, other-org")

    config = load_config()
    assert config.minimum_score == 600
    assert config.trusted_orgs == ("octo-org", "other-org")


def test_invalid_environment_number(temp_project_root, monkeypatch):
    """Test a non-numeric environment value fails fast."""
    monkeypatch.setenv("CONTRIBUTOR_QUALITY_MINIMUM_STARS", "many")
    with pytest.raises(ValueError, match="not a valid number"):
        load_config()


@pytest.mark.parametrize(
    "setting, message",
    [
        ('minimum-score = "300"', "minimum-score must be an integer, got '300'"),
        ("analysis-window = 6.5", "analysis-window must be an integer"),
        ("short-pr-lines = true", "short-pr-lines must be an integer"),
        ('trusted-users = "dependabot[bot]"', "trusted-users must be a list of strings"),
        ("required-metrics = [1, 2]", "required-metrics must be a list of strings"),
        ('weights = "even"', "weights must be a table"),
        ('weights = { prMergeRate = "0.5" }', "prMergeRate weight must be a number"),
        ('thresholds = { accountAge = "30" }', "accountAge threshold must be a number"),
    ],
)
def test_mistyped_file_values(temp_project_root, setting, message):
    """Test wrongly typed TOML values raise ValueError naming the field."""
    config_file = temp_project_root / "custom.toml"
    config_file.write_text(f"[tool.contributor-quality]\n{setting}\n")
    with pytest.raises(ValueError, match=re.escape(message)):
        load_config(config_file)


def test_overrides_win(temp_project_root, monkeypatch):
    """Test keyword overrides win and None overrides are ignored."""
    monkeypatch.setenv("CONTRIBUTOR_QUALITY_MINIMUM_SCORE", "600")
    config = load_config(minimum_score=700, scoring_mode=None)
    assert config.minimum_score == 700
    assert config.scoring_mode == "weighted"


class TestValidation:
    """Test configuration validation."""

    @pytest.mark.parametrize(
        "field, value, message",
        [
            ("minimum_score", 1200, "minimum-score must be between 0 and 1000"),
            ("minimum_score", -1, "minimum-score must be between 0 and 1000"),
            ("minimum_stars", -5, "minimum-stars must be a positive number"),
            ("analysis_window_months", 0, "analysis-window must be greater than 0"),
            ("new_account_threshold_days", -1, "new-account-threshold-days"),
            ("short_pr_line_threshold", 0, "short-pr-lines must be greater than 0"),
            ("scoring_mode", "strict", "Unknown scoring mode"),
            ("required_metrics", ("prMergeRate", "stars"), "Invalid metric names in required-metrics"),
        ],
    )
    def test_out_of_range(self, field, value, message):
        """Test out-of-range values fail fast."""
        with pytest.raises(ValueError, match=message):
            validate_config(DEFAULT_CONFIG._replace(**{field: value}))

    def test_valid_config_is_returned(self):
        """Test a valid config passes through unchanged."""
        assert validate_config(DEFAULT_CONFIG) is DEFAULT_CONFIG

    def test_unknown_weight(self):
        """Test unknown metric names in weights are rejected."""
        with pytest.raises(ValueError, match="Unknown metrics in weights: stars"):
            merge_weights({"stars": 0.1})

    def test_weight_out_of_range(self):
        """Test weights must be within [0, 1]."""
        with pytest.raises(ValueError, match="prMergeRate weight must be between 0 and 1"):
            merge_weights({"prMergeRate": 1.5})

    def test_ratio_threshold_out_of_range(self):
        """Test ratio thresholds must be within [0, 1]."""
        with pytest.raises(ValueError, match="prMergeRate threshold must be between 0 and 1"):
            merge_thresholds({"prMergeRate": 2})

    def test_mistyped_threshold(self):
        """Test string thresholds are rejected before range checks."""
        with pytest.raises(ValueError, match="prMergeRate threshold must be a number"):
            merge_thresholds({"prMergeRate": "0.5"})

    def test_mistyped_hand_built_config(self):
        """Test validate_config type-checks fields of hand-built configs."""
        with pytest.raises(ValueError, match="minimum-stars must be an integer"):
            validate_config(DEFAULT_CONFIG._replace(minimum_stars="100"))

    def test_negative_count_threshold(self):
        """Test count thresholds cannot be negative."""
        with pytest.raises(ValueError, match="accountAge threshold must be a positive number"):
            merge_thresholds({"accountAge": -10})


def test_verify_ssl_toggle():
    """Test the global SSL verification setting."""
    assert get_verify_ssl() is True
    set_verify_ssl(False)
    try:
        assert get_verify_ssl() is False
    finally:
        set_verify_ssl(True)
