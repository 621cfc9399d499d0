"""
Configuration Management for MatchPulse

Provides configuration loading from multiple sources:
- Default values
- Configuration files (YAML, TOML, JSON)
- Environment variables
- Command line arguments

Configuration precedence (highest to lowest):
1. Command line arguments
2. Environment variables (MATCHPULSE_*)
3. Configuration file
4. Default values
"""

import json
import logging
import logging.handlers
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

from matchpulse.core.constants import DEFAULT_OWNER_KEY, IntervalMethod

logger = logging.getLogger(__name__)


# ============================================================================
# Configuration Dataclasses
# ============================================================================


@dataclass
class DatabaseConfig:
    """Where the telemetry store lives."""

    # Full SQLAlchemy URL; takes precedence over path when set
    url: str | None = None
    path: str | None = None
    echo: bool = False


@dataclass
class GenerationConfig:
    """Match-level and per-phase ranges for synthetic telemetry."""

    match_count: int = 10
    owner_key: str = DEFAULT_OWNER_KEY
    owner_name: str = "Admin"
    seed: int | None = None

    # Match header
    days_back: int = 30
    min_duration_minutes: int = 15
    max_duration_minutes: int = 45
    max_score: int = 12

    # Phase segmentation (inclusive)
    min_phases: int = 3
    max_phases: int = 6

    # Events per phase (inclusive)
    min_events_per_phase: int = 10
    max_events_per_phase: int = 29
    duel_success_rate: float = 0.7
    ability_success_rate: float = 0.5

    # Untagged per-phase TTD samples
    phase_ttd_samples: bool = True
    min_phase_ttd_samples: int = 5
    max_phase_ttd_samples: int = 14


@dataclass
class TTDCurveConfig:
    """U-shaped reaction-time curve (warm-up, peak, fatigue)."""

    base_ttd_ms: float = 450.0
    amplitude_ms: float = 200.0
    # Normalized progress at which the curve bottoms out
    min_point: float = 0.4
    std_dev_ms: float = 80.0
    samples_per_round: int = 3
    min_rounds: int = 13
    max_rounds: int = 25
    min_latency_ms: int = 100
    # Upper bound of the stimulus-to-decision delay inside a sample
    max_decision_delay_ms: int = 200
    # Rounds past this fraction of the match draw high/critical pressure
    late_round_fraction: float = 0.7


@dataclass
class VoiceConfig:
    min_turns_per_phase: int = 5
    max_turns_per_phase: int = 19
    min_duration_ms: int = 1000
    max_duration_ms: int = 11000
    interruption_probability: float = 0.15
    clarity_range: tuple[float, float] = (3.0, 5.0)
    info_density_range: tuple[float, float] = (2.0, 5.0)
    language: str = "en-US"


@dataclass
class ComboConfig:
    min_combos: int = 2
    max_combos: int = 6
    min_attempts: int = 5
    max_attempts: int = 24
    interval_method: str = IntervalMethod.FIXED.value
    # Half-width of the fixed interval
    interval_delta: float = 0.1
    wilson_z: float = 1.96


@dataclass
class AnalyticsConfig:
    # Most-recent matches considered by the trend metrics
    window_size: int = 10


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: str | None = None
    file_max_bytes: int = 10 * 1024 * 1024  # 10MB
    file_backup_count: int = 5


@dataclass
class MatchPulseConfig:
    """Main configuration container."""

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    generation: GenerationConfig = field(default_factory=GenerationConfig)
    ttd: TTDCurveConfig = field(default_factory=TTDCurveConfig)
    voice: VoiceConfig = field(default_factory=VoiceConfig)
    combos: ComboConfig = field(default_factory=ComboConfig)
    analytics: AnalyticsConfig = field(default_factory=AnalyticsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Version of the config format
    config_version: str = "1.0"

    def validate(self) -> None:
        """Raise ValueError on ranges no generator can honor."""
        gen = self.generation
        _check_range("generation phases", gen.min_phases, gen.max_phases, minimum=1)
        _check_range(
            "generation events_per_phase",
            gen.min_events_per_phase,
            gen.max_events_per_phase,
        )
        _check_range(
            "generation duration_minutes",
            gen.min_duration_minutes,
            gen.max_duration_minutes,
            minimum=1,
        )
        _check_range(
            "generation phase_ttd_samples",
            gen.min_phase_ttd_samples,
            gen.max_phase_ttd_samples,
        )
        if gen.match_count < 0:
            raise ValueError("generation.match_count must be >= 0")
        if gen.seed is not None and (not isinstance(gen.seed, int) or isinstance(gen.seed, bool) or gen.seed < 0):
            raise ValueError(f"generation.seed must be a non-negative integer, got {gen.seed!r}")
        if not isinstance(gen.owner_key, str) or not gen.owner_key:
            raise ValueError("generation.owner_key must be a non-empty string")

        ttd = self.ttd
        _check_range("ttd rounds", ttd.min_rounds, ttd.max_rounds, minimum=1)
        if not 0.0 <= ttd.min_point < 1.0:
            raise ValueError("ttd.min_point must be in [0, 1)")
        if ttd.samples_per_round < 1:
            raise ValueError("ttd.samples_per_round must be >= 1")
        if ttd.min_latency_ms < 1:
            raise ValueError("ttd.min_latency_ms must be positive")

        voice = self.voice
        _check_range("voice turns_per_phase", voice.min_turns_per_phase, voice.max_turns_per_phase)
        _check_range("voice duration_ms", voice.min_duration_ms, voice.max_duration_ms, minimum=1)

        combos = self.combos
        _check_range("combos count", combos.min_combos, combos.max_combos)
        _check_range("combos attempts", combos.min_attempts, combos.max_attempts)
        if combos.interval_method not in {m.value for m in IntervalMethod}:
            raise ValueError(f"Unknown combos.interval_method: {combos.interval_method}")

        if self.analytics.window_size < 1:
            raise ValueError("analytics.window_size must be >= 1")


def _check_range(name: str, low: int, high: int, minimum: int = 0) -> None:
    if low < minimum or high < low:
        raise ValueError(f"Invalid {name} range: [{low}, {high}]")


# ============================================================================
# Configuration Loading
# ============================================================================


def get_default_config_paths() -> list[Path]:
    """Get the default paths to search for configuration files."""
    paths = []

    # Current directory
    paths.append(Path.cwd() / "matchpulse.yaml")
    paths.append(Path.cwd() / "matchpulse.toml")
    paths.append(Path.cwd() / "matchpulse.json")

    # User home directory
    home = Path.home()
    paths.append(home / ".config" / "matchpulse" / "config.yaml")
    paths.append(home / ".config" / "matchpulse" / "config.toml")

    # XDG config directory
    xdg_config = os.environ.get("XDG_CONFIG_HOME", str(home / ".config"))
    paths.append(Path(xdg_config) / "matchpulse" / "config.yaml")

    return paths


def load_yaml_config(path: Path) -> dict[str, Any]:
    """Load configuration from a YAML file."""
    import yaml

    with open(path) as f:
        return yaml.safe_load(f) or {}


def load_toml_config(path: Path) -> dict[str, Any]:
    """Load configuration from a TOML file."""
    import tomllib

    with open(path, "rb") as f:
        return tomllib.load(f)


def load_json_config(path: Path) -> dict[str, Any]:
    """Load configuration from a JSON file."""
    with open(path) as f:
        return json.load(f)


def load_config_file(path: Path) -> dict[str, Any]:
    """Load configuration from a file, detecting format from extension."""
    if not path.exists():
        return {}

    suffix = path.suffix.lower()
    if suffix in (".yaml", ".yml"):
        return load_yaml_config(path)
    elif suffix == ".toml":
        return load_toml_config(path)
    elif suffix == ".json":
        return load_json_config(path)
    else:
        logger.warning(f"Unknown config file format: {suffix}")
        return {}


ENV_MAPPINGS: dict[str, tuple[str, str]] = {
    "MATCHPULSE_DB_URL": ("database", "url"),
    "MATCHPULSE_DB_PATH": ("database", "path"),
    "MATCHPULSE_LOG_LEVEL": ("logging", "level"),
    "MATCHPULSE_LOG_FILE": ("logging", "file"),
    "MATCHPULSE_MATCH_COUNT": ("generation", "match_count"),
    "MATCHPULSE_OWNER": ("generation", "owner_key"),
    "MATCHPULSE_SEED": ("generation", "seed"),
    "MATCHPULSE_COMBO_INTERVAL": ("combos", "interval_method"),
    "MATCHPULSE_WINDOW_SIZE": ("analytics", "window_size"),
}


# Values for these keys are kept verbatim; "1234" is a valid owner key.
STRING_ENV_KEYS: frozenset[tuple[str, str]] = frozenset(
    {
        ("database", "url"),
        ("database", "path"),
        ("logging", "level"),
        ("logging", "file"),
        ("generation", "owner_key"),
        ("combos", "interval_method"),
    }
)


def _convert_env_value(value: str) -> Any:
    if value.lower() in ("true", "false"):
        return value.lower() == "true"
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        return value


def load_env_config() -> dict[str, Any]:
    """Load configuration from environment variables."""
    config: dict[str, Any] = {}

    for env_var, (section, key) in ENV_MAPPINGS.items():
        value = os.environ.get(env_var)
        if value is not None:
            if section not in config:
                config[section] = {}
            if (section, key) not in STRING_ENV_KEYS:
                value = _convert_env_value(value)
            config[section][key] = value

    return config


def merge_configs(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge two configuration dictionaries."""
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_configs(result[key], value)
        else:
            result[key] = value

    return result


def dict_to_config(data: dict[str, Any]) -> MatchPulseConfig:
    """Convert a dictionary to MatchPulseConfig, ignoring unknown keys."""
    config = MatchPulseConfig()

    for section in fields(config):
        values = data.get(section.name)
        if not isinstance(values, dict):
            continue
        target = getattr(config, section.name)
        for key, value in values.items():
            if not hasattr(target, key):
                logger.warning(f"Ignoring unknown config key: {section.name}.{key}")
                continue
            current = getattr(target, key)
            # YAML/JSON give lists where the dataclass holds tuples
            if isinstance(current, tuple) and isinstance(value, list):
                value = tuple(value)
            setattr(target, key, value)

    return config


def load_config(config_file: Path | None = None, include_env: bool = True) -> MatchPulseConfig:
    """
    Load configuration from all sources.

    Args:
        config_file: Explicit path to a config file (optional)
        include_env: Whether to include environment variables

    Returns:
        Merged and validated MatchPulseConfig
    """
    config_data: dict[str, Any] = {}

    # Try to find and load a config file
    if config_file:
        if not config_file.exists():
            raise FileNotFoundError(f"Config file not found: {config_file}")
        config_data = load_config_file(config_file)
        logger.info(f"Loaded config from: {config_file}")
    else:
        for path in get_default_config_paths():
            if path.exists():
                config_data = load_config_file(path)
                logger.info(f"Loaded config from: {path}")
                break

    # Merge environment variables
    if include_env:
        env_config = load_env_config()
        config_data = merge_configs(config_data, env_config)

    config = dict_to_config(config_data)
    config.validate()
    return config


# ============================================================================
# Configuration Saving
# ============================================================================


def config_to_dict(config: MatchPulseConfig) -> dict[str, Any]:
    """Convert MatchPulseConfig to a plain dictionary (tuples become lists)."""
    return json.loads(json.dumps(asdict(config)))


def save_config(config: MatchPulseConfig, path: Path) -> None:
    """
    Save configuration to a file.

    Args:
        config: Configuration to save
        path: Path to save to (.yaml/.yml or .json)
    """
    data = config_to_dict(config)
    suffix = path.suffix.lower()

    if suffix in (".yaml", ".yml"):
        import yaml

        with open(path, "w") as f:
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)

    elif suffix == ".json":
        with open(path, "w") as f:
            json.dump(data, f, indent=2)

    else:
        raise ValueError(f"Unknown config format: {suffix}")

    logger.info(f"Saved config to: {path}")


def generate_default_config(path: Path) -> None:
    """Generate a default configuration file."""
    save_config(MatchPulseConfig(), path)
    logger.info(f"Generated default config at: {path}")


# ============================================================================
# Logging Setup
# ============================================================================


def configure_logging(config: LoggingConfig) -> None:
    """Apply the logging section to the root logger."""
    root = logging.getLogger()
    root.setLevel(config.level.upper())

    formatter = logging.Formatter(config.format)
    if not any(isinstance(h, logging.StreamHandler) for h in root.handlers):
        stream = logging.StreamHandler()
        stream.setFormatter(formatter)
        root.addHandler(stream)

    if config.file:
        file_handler = logging.handlers.RotatingFileHandler(
            config.file,
            maxBytes=config.file_max_bytes,
            backupCount=config.file_backup_count,
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)
