"""Orchestrator configuration: OrchestratorConfig and load/get/set/reset functions."""

import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from kc_orchestrator.core.errors.task import ConfigurationError
from kc_orchestrator.core.providers.registry import (
    DEFAULT_PROVIDER_ORDER,
    normalize_provider_name,
)

logger = logging.getLogger(__name__)

ENV_PREFIX = "KC_ORCHESTRATOR_"
VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


def default_config_search_paths() -> List[Path]:
    """Return the standard config file search paths (lowest to highest priority).

    1. XDG config (~/.config/kc-orchestrator/config.toml)
    2. User home config (~/.kc-orchestrator.toml)
    3. Project dotfile config (./.kc-orchestrator.toml)
    4. Project config (./kc-orchestrator.toml)
    """
    xdg_config_home = os.environ.get("XDG_CONFIG_HOME", str(Path.home() / ".config"))
    return [
        Path(xdg_config_home) / "kc-orchestrator" / "config.toml",
        Path.home() / ".kc-orchestrator.toml",
        Path(".kc-orchestrator.toml"),
        Path("kc-orchestrator.toml"),
    ]


@dataclass
class OrchestratorConfig:
    """Orchestration configuration parsed from the ``[orchestrator]`` TOML section.

    TOML Configuration Example:
        [orchestrator]
        provider_order = ["codex", "claude", "vibe"]
        provider_timeout = 120        # Per-provider timeout in seconds
        max_retries = 3               # Forwarded to providers

        circuit_failure_threshold = 3
        circuit_reset_timeout = 300   # Seconds before an open circuit closes

        ai_selection_enabled = true
        ai_selection_cache_ttl = 3600
        advisory_base_url = "http://localhost:11434"
        advisory_model = "llama3"

        [orchestrator.provider_overrides.claude]
        binary = "/opt/claude/bin/claude"
        timeout = 300

    Environment Variables:
        - KC_ORCHESTRATOR_PROVIDER_ORDER: Comma-separated provider order
        - KC_ORCHESTRATOR_PROVIDER_TIMEOUT: Per-provider timeout in seconds
        - KC_ORCHESTRATOR_MAX_RETRIES: Retries forwarded to providers
        - KC_ORCHESTRATOR_CIRCUIT_FAILURE_THRESHOLD: Failures that open a circuit
        - KC_ORCHESTRATOR_CIRCUIT_RESET_TIMEOUT: Circuit cooldown in seconds
        - KC_ORCHESTRATOR_AI_SELECTION_ENABLED: Enable advised selection (true/false)
        - KC_ORCHESTRATOR_AI_SELECTION_CACHE_TTL: Advice cache TTL in seconds
        - KC_ORCHESTRATOR_ADVISORY_BASE_URL: Ollama base URL
        - KC_ORCHESTRATOR_ADVISORY_MODEL: Ollama model name
        - KC_ORCHESTRATOR_ADVISORY_TIMEOUT: Ollama request timeout in seconds
        - KC_ORCHESTRATOR_LOG_LEVEL: Log level for the kc_orchestrator logger
        - KC_ORCHESTRATOR_STRUCTURED_LOGGING: JSON-style log lines (true/false)
    """

    provider_order: List[str] = field(default_factory=lambda: list(DEFAULT_PROVIDER_ORDER))
    provider_timeout: float = 120.0
    max_retries: int = 3
    circuit_failure_threshold: int = 3
    circuit_reset_timeout: float = 300.0
    ai_selection_enabled: bool = True
    ai_selection_cache_ttl: float = 3600.0
    advisory_base_url: str = "http://localhost:11434"
    advisory_model: str = "llama3"
    advisory_timeout: float = 30.0
    log_level: str = "INFO"
    structured_logging: bool = False
    provider_overrides: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    def validate(self) -> None:
        """Validate the configuration.

        Raises:
            ValueError: If configuration is invalid
        """
        if not self.provider_order:
            raise ValueError("provider_order must not be empty")
        if self.provider_timeout <= 0:
            raise ValueError(f"provider_timeout must be positive, got {self.provider_timeout}")
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be non-negative, got {self.max_retries}")
        if self.circuit_failure_threshold < 1:
            raise ValueError(
                "circuit_failure_threshold must be at least 1, "
                f"got {self.circuit_failure_threshold}"
            )
        if self.circuit_reset_timeout < 0:
            raise ValueError(
                f"circuit_reset_timeout must be non-negative, got {self.circuit_reset_timeout}"
            )
        if self.ai_selection_cache_ttl <= 0:
            raise ValueError(
                f"ai_selection_cache_ttl must be positive, got {self.ai_selection_cache_ttl}"
            )
        if self.advisory_timeout <= 0:
            raise ValueError(f"advisory_timeout must be positive, got {self.advisory_timeout}")
        if self.log_level.upper() not in VALID_LOG_LEVELS:
            raise ValueError(
                f"log_level must be one of {sorted(VALID_LOG_LEVELS)}, got '{self.log_level}'"
            )

    def get_override(self, provider: str) -> Dict[str, Any]:
        """Override settings for a provider (empty if none configured)."""
        return self.provider_overrides.get(normalize_provider_name(provider), {})

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OrchestratorConfig":
        """Create OrchestratorConfig from a dictionary (typically the [orchestrator] section)."""
        config = cls()

        if "provider_order" in data:
            order = data["provider_order"]
            if isinstance(order, str):
                config.provider_order = [p.strip() for p in order.split(",") if p.strip()]
            elif isinstance(order, list):
                config.provider_order = [str(p) for p in order]
            else:
                logger.warning("Invalid provider_order format (expected list): %s", type(order))

        if "provider_overrides" in data:
            overrides = data["provider_overrides"]
            if isinstance(overrides, dict):
                config.provider_overrides = {
                    normalize_provider_name(str(name)): dict(values)
                    for name, values in overrides.items()
                    if isinstance(values, dict)
                }
            else:
                logger.warning(
                    "Invalid provider_overrides format (expected dict): %s", type(overrides)
                )

        if "provider_timeout" in data:
            config.provider_timeout = float(data["provider_timeout"])
        if "max_retries" in data:
            config.max_retries = int(data["max_retries"])
        if "circuit_failure_threshold" in data:
            config.circuit_failure_threshold = int(data["circuit_failure_threshold"])
        if "circuit_reset_timeout" in data:
            config.circuit_reset_timeout = float(data["circuit_reset_timeout"])
        if "ai_selection_enabled" in data:
            config.ai_selection_enabled = bool(data["ai_selection_enabled"])
        if "ai_selection_cache_ttl" in data:
            config.ai_selection_cache_ttl = float(data["ai_selection_cache_ttl"])
        if "advisory_base_url" in data:
            config.advisory_base_url = str(data["advisory_base_url"])
        if "advisory_model" in data:
            config.advisory_model = str(data["advisory_model"])
        if "advisory_timeout" in data:
            config.advisory_timeout = float(data["advisory_timeout"])
        if "log_level" in data:
            config.log_level = str(data["log_level"]).upper()
        if "structured_logging" in data:
            config.structured_logging = bool(data["structured_logging"])

        return config

    @classmethod
    def from_toml(cls, path: Path) -> "OrchestratorConfig":
        """Load configuration from a TOML file.

        Raises:
            FileNotFoundError: If the config file doesn't exist
        """
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path, "rb") as f:
            data = tomllib.load(f)

        return cls.from_dict(data.get("orchestrator", {}))

    @classmethod
    def from_env(cls, base: Optional["OrchestratorConfig"] = None) -> "OrchestratorConfig":
        """Apply KC_ORCHESTRATOR_* environment variables.

        Args:
            base: Configuration to override (defaults when omitted). It is
                modified in place and returned.

        Invalid numeric values are logged and ignored.
        """
        config = base if base is not None else cls()

        if order := os.environ.get(f"{ENV_PREFIX}PROVIDER_ORDER"):
            config.provider_order = [p.strip() for p in order.split(",") if p.strip()]

        numeric_fields = (
            ("PROVIDER_TIMEOUT", "provider_timeout", float),
            ("MAX_RETRIES", "max_retries", int),
            ("CIRCUIT_FAILURE_THRESHOLD", "circuit_failure_threshold", int),
            ("CIRCUIT_RESET_TIMEOUT", "circuit_reset_timeout", float),
            ("AI_SELECTION_CACHE_TTL", "ai_selection_cache_ttl", float),
            ("ADVISORY_TIMEOUT", "advisory_timeout", float),
        )
        for suffix, attr, convert in numeric_fields:
            if raw := os.environ.get(f"{ENV_PREFIX}{suffix}"):
                try:
                    setattr(config, attr, convert(raw))
                except ValueError:
                    logger.warning("Invalid %s%s: %s, using default", ENV_PREFIX, suffix, raw)

        if enabled := os.environ.get(f"{ENV_PREFIX}AI_SELECTION_ENABLED"):
            config.ai_selection_enabled = _parse_bool(enabled)
        if base_url := os.environ.get(f"{ENV_PREFIX}ADVISORY_BASE_URL"):
            config.advisory_base_url = base_url
        if model := os.environ.get(f"{ENV_PREFIX}ADVISORY_MODEL"):
            config.advisory_model = model
        if level := os.environ.get(f"{ENV_PREFIX}LOG_LEVEL"):
            config.log_level = level.upper()
        if structured := os.environ.get(f"{ENV_PREFIX}STRUCTURED_LOGGING"):
            config.structured_logging = _parse_bool(structured)

        return config

    def setup_logging(self) -> None:
        """Configure the kc_orchestrator logger based on settings."""
        level = getattr(logging, self.log_level.upper(), logging.INFO)

        if self.structured_logging:
            # JSON-style structured logging
            formatter = logging.Formatter(
                '{"timestamp":"%(asctime)s","level":"%(levelname)s","logger":"%(name)s","message":"%(message)s"}'
            )
        else:
            formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

        handler = logging.StreamHandler()
        handler.setFormatter(formatter)

        package_logger = logging.getLogger("kc_orchestrator")
        package_logger.setLevel(level)
        package_logger.addHandler(handler)


def load_config(
    config_file: Optional[Path] = None,
    use_env_fallback: bool = True,
) -> OrchestratorConfig:
    """Load orchestrator configuration from TOML file with environment fallback.

    Priority (highest to lowest):
    1. Environment variables
    2. TOML config file (explicit path, else the last existing search path)
    3. Default values

    Raises:
        ConfigurationError: If an explicit config file cannot be read or the
            merged configuration is invalid
    """
    config = OrchestratorConfig()

    if config_file is not None:
        try:
            config = OrchestratorConfig.from_toml(config_file)
        except (OSError, tomllib.TOMLDecodeError, ValueError, TypeError) as e:
            raise ConfigurationError(
                f"Failed to load orchestrator config: {e}", config_path=str(config_file)
            ) from e
        logger.debug("Loaded orchestrator config from %s", config_file)
    else:
        for path in default_config_search_paths():
            if path.exists():
                try:
                    config = OrchestratorConfig.from_toml(path)
                    logger.debug("Loaded orchestrator config from %s", path)
                except (OSError, tomllib.TOMLDecodeError, ValueError, TypeError) as e:
                    logger.warning("Failed to load orchestrator config from %s: %s", path, e)

    if use_env_fallback:
        config = OrchestratorConfig.from_env(config)

    try:
        config.validate()
    except ValueError as e:
        raise ConfigurationError(str(e), config_path=str(config_file) if config_file else None) from e

    return config


# Global configuration instance
_config: Optional[OrchestratorConfig] = None


def get_config() -> OrchestratorConfig:
    """Get the global configuration instance (loaded on first call)."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def set_config(config: OrchestratorConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config


def reset_config() -> None:
    """Reset the global configuration to None.

    Useful for testing or reloading configuration.
    """
    global _config
    _config = None


__all__ = [
    "OrchestratorConfig",
    "default_config_search_paths",
    "get_config",
    "load_config",
    "reset_config",
    "set_config",
]
