"""
Configuration management for Contributor Quality.

Loads scoring settings from:
1. .contributor-quality.toml (local config)
2. pyproject.toml (project-level config)
3. CONTRIBUTOR_QUALITY_* environment variables (override both)
"""

import os
import tomllib
from pathlib import Path
from typing import Any, NamedTuple

from rich.console import Console

console = Console(stderr=True)

# project_root is the parent directory of contributor_quality/
PROJECT_ROOT = Path(__file__).resolve().parent.parent

CONFIG_FILE_NAME = ".contributor-quality.toml"
CONFIG_SECTION = "contributor-quality"

# Global configuration for SSL verification
# Default: True (verify SSL certificates)
# Can be set to False by CLI --insecure flag
VERIFY_SSL = True

SCORING_MODES = ("weighted", "threshold")


class MetricWeights(NamedTuple):
    """Weight applied to each metric's normalized score. Should sum to 1.0."""

    prMergeRate: float = 0.2
    repoQuality: float = 0.15
    positiveReactions: float = 0.15
    negativeReactions: float = 0.1
    accountAge: float = 0.1
    activityConsistency: float = 0.1
    issueEngagement: float = 0.1
    codeReviews: float = 0.1


class MetricThresholds(NamedTuple):
    """Per-metric raw-value thresholds used by the threshold scoring mode."""

    prMergeRate: float = 0.3
    repoQuality: int = 0
    positiveReactions: float = 0.0
    negativeReactions: float = 0.3  # maximum tolerated negative ratio
    accountAge: int = 30
    activityConsistency: float = 0.0
    issueEngagement: int = 0
    codeReviews: int = 0


METRIC_NAMES: tuple[str, ...] = MetricWeights._fields

DEFAULT_WEIGHTS = MetricWeights()
DEFAULT_THRESHOLDS = MetricThresholds()

# Common bots that are always scored out-of-band
DEFAULT_TRUSTED_USERS: tuple[str, ...] = (
    "dependabot[bot]",
    "renovate[bot]",
    "github-actions[bot]",
    "codecov[bot]",
    "sonarcloud[bot]",
)

# Thresholds expressed as ratios must stay within [0, 1]
_RATIO_THRESHOLDS = {
    "prMergeRate",
    "positiveReactions",
    "negativeReactions",
    "activityConsistency",
}


class ScoringConfig(NamedTuple):
    """Validated settings consumed by the scoring core."""

    minimum_score: int = 300
    minimum_stars: int = 100
    analysis_window_months: int = 12
    weights: MetricWeights = DEFAULT_WEIGHTS
    new_account_threshold_days: int = 30
    short_pr_line_threshold: int = 10
    scoring_mode: str = "weighted"
    thresholds: MetricThresholds = DEFAULT_THRESHOLDS
    required_metrics: tuple[str, ...] = ("prMergeRate", "accountAge")
    trusted_users: tuple[str, ...] = DEFAULT_TRUSTED_USERS
    trusted_orgs: tuple[str, ...] = ()


DEFAULT_CONFIG = ScoringConfig()


# Integer fields of ScoringConfig and their config-file keys
_INTEGER_FIELDS = {
    "minimum_score": "minimum-score",
    "minimum_stars": "minimum-stars",
    "analysis_window_months": "analysis-window",
    "new_account_threshold_days": "new-account-threshold-days",
    "short_pr_line_threshold": "short-pr-lines",
}


def _require_number(label: str, value: Any) -> float:
    """Reject non-numeric values (TOML strings, booleans, tables) with a ValueError."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{label} must be a number, got {value!r}")
    return value


def _require_integer(label: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{label} must be an integer, got {value!r}")
    return value


def _string_list(label: str, value: Any) -> tuple[str, ...]:
    if not isinstance(value, (list, tuple)) or not all(
        isinstance(item, str) for item in value
    ):
        raise ValueError(f"{label} must be a list of strings, got {value!r}")
    return tuple(value)


def validate_weights(weights: MetricWeights) -> bool:
    """Return True when weights sum to approximately 1.0."""
    return abs(sum(weights) - 1.0) < 0.01


def merge_weights(custom: dict[str, Any]) -> MetricWeights:
    """
    Merge custom weights over the defaults.

    Raises:
        ValueError: If a metric name is unknown or a weight is outside [0, 1].
    """
    if not isinstance(custom, dict):
        raise ValueError(f"weights must be a table, got {custom!r}")
    unknown = set(custom) - set(METRIC_NAMES)
    if unknown:
        raise ValueError(f"Unknown metrics in weights: {', '.join(sorted(unknown))}.")

    merged = DEFAULT_WEIGHTS._replace(
        **{
            name: float(_require_number(f"{name} weight", value))
            for name, value in custom.items()
        }
    )
    for name, value in merged._asdict().items():
        if not 0.0 <= value <= 1.0:
            raise ValueError(f"{name} weight must be between 0 and 1, got {value}")
    return merged


def merge_thresholds(custom: dict[str, Any]) -> MetricThresholds:
    """
    Merge custom metric thresholds over the defaults.

    Raises:
        ValueError: If a metric name is unknown or a threshold is out of range.
    """
    if not isinstance(custom, dict):
        raise ValueError(f"thresholds must be a table, got {custom!r}")
    unknown = set(custom) - set(METRIC_NAMES)
    if unknown:
        raise ValueError(
            f"Unknown metrics in thresholds: {', '.join(sorted(unknown))}."
        )

    merged = DEFAULT_THRESHOLDS._replace(**custom)
    for name, value in merged._asdict().items():
        _require_number(f"{name} threshold", value)
        if name in _RATIO_THRESHOLDS and not 0 <= value <= 1:
            raise ValueError(f"{name} threshold must be between 0 and 1, got {value}")
        if value < 0:
            raise ValueError(f"{name} threshold must be a positive number, got {value}")
    return merged


def validate_config(config: ScoringConfig) -> ScoringConfig:
    """
    Validate every bounded field of a ScoringConfig.

    Returns:
        The same config, for chaining.

    Raises:
        ValueError: On the first mistyped or out-of-range value.
    """
    for field, label in _INTEGER_FIELDS.items():
        _require_integer(label, getattr(config, field))
    for field, label in (
        ("required_metrics", "required-metrics"),
        ("trusted_users", "trusted-users"),
        ("trusted_orgs", "trusted-orgs"),
    ):
        _string_list(label, getattr(config, field))

    if not 0 <= config.minimum_score <= 1000:
        raise ValueError(
            f"minimum-score must be between 0 and 1000, got {config.minimum_score}"
        )
    if config.minimum_stars < 0:
        raise ValueError(
            f"minimum-stars must be a positive number, got {config.minimum_stars}"
        )
    if config.analysis_window_months <= 0:
        raise ValueError(
            "analysis-window must be greater than 0, "
            f"got {config.analysis_window_months}"
        )
    if config.new_account_threshold_days < 0:
        raise ValueError(
            "new-account-threshold-days must be a positive number, "
            f"got {config.new_account_threshold_days}"
        )
    if config.short_pr_line_threshold <= 0:
        raise ValueError(
            "short-pr-lines must be greater than 0, "
            f"got {config.short_pr_line_threshold}"
        )
    if config.scoring_mode not in SCORING_MODES:
        raise ValueError(
            f"Unknown scoring mode '{config.scoring_mode}'. "
            f"Available: {', '.join(SCORING_MODES)}"
        )

    invalid_metrics = set(config.required_metrics) - set(METRIC_NAMES)
    if invalid_metrics:
        raise ValueError(
            "Invalid metric names in required-metrics: "
            f"{', '.join(sorted(invalid_metrics))}"
        )

    # Re-run field checks so hand-built tuples get the same guarantees
    merge_weights(config.weights._asdict())
    merge_thresholds(config.thresholds._asdict())

    if not validate_weights(config.weights):
        console.print(
            "[yellow]Warning: Metric weights do not sum to 1.0 "
            f"(sum={sum(config.weights):.2f}). Results may be skewed.[/yellow]"
        )
    return config


def load_config_file(config_path: Path) -> dict:
    """Load a TOML configuration file."""
    if not config_path.exists():
        return {}
    try:
        with open(config_path, "rb") as f:
            return tomllib.load(f)
    except Exception as e:
        raise ValueError(f"Failed to load config from {config_path}: {e}") from e


def _read_section(config_path: Path) -> dict[str, Any]:
    config = load_config_file(config_path)
    return config.get("tool", {}).get(CONFIG_SECTION, {})


def _parse_list(value: str) -> tuple[str, ...]:
    """Parse a comma-separated string into a tuple of stripped entries."""
    return tuple(item.strip() for item in value.split(",") if item.strip())


def _env_int(name: str) -> int | None:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return None
    try:
        return int(value)
    except ValueError as e:
        raise ValueError(f"Invalid {name}: {value!r} is not a valid number") from e


def get_raw_settings(config_path: Path | None = None) -> dict[str, Any]:
    """
    Collect raw settings from configuration files.

    Priority:
    1. Explicit config_path, if given
    2. .contributor-quality.toml (local config)
    3. pyproject.toml (project-level config, fallback)

    Returns:
        The [tool.contributor-quality] table, or an empty dict.
    """
    if config_path is not None:
        if not config_path.exists():
            raise ValueError(f"Config file not found: {config_path}")
        return _read_section(config_path)

    local_config_path = PROJECT_ROOT / CONFIG_FILE_NAME
    if local_config_path.exists():
        settings = _read_section(local_config_path)
        if settings:
            return settings

    pyproject_path = PROJECT_ROOT / "pyproject.toml"
    if pyproject_path.exists():
        return _read_section(pyproject_path)

    return {}


def load_config(config_path: Path | None = None, **overrides: Any) -> ScoringConfig:
    """
    Build a validated ScoringConfig from files, environment and overrides.

    Keyword overrides (e.g. from CLI flags) win over environment variables,
    which win over config files.

    Raises:
        ValueError: If any value is malformed or out of range.
    """
    settings = get_raw_settings(config_path)

    values: dict[str, Any] = {}
    key_map = {
        "minimum-score": "minimum_score",
        "minimum-stars": "minimum_stars",
        "analysis-window": "analysis_window_months",
        "new-account-threshold-days": "new_account_threshold_days",
        "short-pr-lines": "short_pr_line_threshold",
        "mode": "scoring_mode",
    }
    for file_key, field in key_map.items():
        if file_key in settings:
            values[field] = settings[file_key]

    if "required-metrics" in settings:
        values["required_metrics"] = _string_list(
            "required-metrics", settings["required-metrics"]
        )
    if "trusted-users" in settings:
        values["trusted_users"] = _string_list(
            "trusted-users", settings["trusted-users"]
        )
    if "trusted-orgs" in settings:
        values["trusted_orgs"] = _string_list(
            "trusted-orgs", settings["trusted-orgs"]
        )

    values["weights"] = merge_weights(settings.get("weights", {}))
    values["thresholds"] = merge_thresholds(settings.get("thresholds", {}))

    env_map = {
        "CONTRIBUTOR_QUALITY_MINIMUM_SCORE": "minimum_score",
        "CONTRIBUTOR_QUALITY_MINIMUM_STARS": "minimum_stars",
        "CONTRIBUTOR_QUALITY_ANALYSIS_WINDOW": "analysis_window_months",
        "CONTRIBUTOR_QUALITY_NEW_ACCOUNT_DAYS": "new_account_threshold_days",
    }
    for env_name, field in env_map.items():
        env_value = _env_int(env_name)
        if env_value is not None:
            values[field] = env_value

    env_trusted = os.getenv("CONTRIBUTOR_QUALITY_TRUSTED_USERS")
    if env_trusted:
        values["trusted_users"] = _parse_list(env_trusted)
    env_orgs = os.getenv("CONTRIBUTOR_QUALITY_TRUSTED_ORGS")
    if env_orgs:
        values["trusted_orgs"] = _parse_list(env_orgs)

    values.update({key: value for key, value in overrides.items() if value is not None})
    return validate_config(ScoringConfig(**values))


def set_verify_ssl(verify: bool) -> None:
    """
    Set the SSL verification setting globally.

    Args:
        verify: Whether to verify SSL certificates.
    """
    global VERIFY_SSL
    VERIFY_SSL = verify


def get_verify_ssl() -> bool:
    """
    Get the current SSL verification setting.

    Returns:
        Whether SSL verification is enabled.
    """
    return VERIFY_SSL
