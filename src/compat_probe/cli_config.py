"""
Configuration management for compat-probe.

Provides configurable settings for the build runner, the artifact resolver,
the descriptor mutator and logging. Values come from defaults, then a
config file, then ``COMPAT_PROBE_*`` environment variables.
"""

import json
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import toml
from rich.console import Console

from .error_handling import ConfigurationError

console = Console(stderr=True)

MATCH_POLICIES = ("ignore", "fail")


@dataclass
class BuildConfig:
    """External build tool configuration."""

    maven_executable: str = "mvn"
    goals: List[str] = field(
        default_factory=lambda: ["clean", "compile", "--fail-at-end"]
    )
    descriptor_name: str = "pom.xml"


@dataclass
class ResolverConfig:
    """Remote artifact resolution configuration."""

    repository_url: str = "https://repo1.maven.org/maven2"
    local_repository: str = "local-repo"
    user_agent: str = "compat-probe/1.0.0"
    connect_timeout: float = 10.0
    read_timeout: float = 60.0


@dataclass
class MutationConfig:
    """Descriptor mutation configuration."""

    on_missing: str = "ignore"
    replace_existing_plugins: bool = False
    dependency_plugin_version: str = "3.1.1"
    build_helper_version: str = "3.0.0"
    extracted_sources_dir: str = "${project.build.directory}/extracted-sources"


@dataclass
class LoggingConfig:
    """Logging and error handling configuration."""

    log_level: str = "WARNING"


@dataclass
class ProbeConfig:
    """Main configuration containing all subsections."""

    build: BuildConfig = field(default_factory=BuildConfig)
    resolver: ResolverConfig = field(default_factory=ResolverConfig)
    mutation: MutationConfig = field(default_factory=MutationConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


_global_config: Optional[ProbeConfig] = None


def validate_config_values(config: ProbeConfig) -> List[str]:
    """
    Validate configuration values and return any errors.

    Args:
        config: Configuration to validate

    Returns:
        List[str]: List of validation errors (empty if valid)
    """
    errors = []

    if not config.build.maven_executable:
        errors.append("build.maven_executable must be set")
    if not config.build.goals:
        errors.append("build.goals must not be empty")
    if not config.build.descriptor_name:
        errors.append("build.descriptor_name must be set")

    if not config.resolver.repository_url.startswith(("http://", "https://")):
        errors.append("resolver.repository_url must be an http(s) URL")
    if config.resolver.connect_timeout <= 0:
        errors.append("resolver.connect_timeout must be positive")
    if config.resolver.read_timeout <= 0:
        errors.append("resolver.read_timeout must be positive")

    if config.mutation.on_missing not in MATCH_POLICIES:
        errors.append(
            f"mutation.on_missing must be one of: {', '.join(MATCH_POLICIES)}"
        )

    if config.logging.log_level.upper() not in {
        "DEBUG",
        "INFO",
        "WARNING",
        "ERROR",
        "CRITICAL",
    }:
        errors.append("logging.log_level must be a standard logging level name")

    return errors


def load_config_file(config_path: Path) -> Optional[Dict[str, Any]]:
    """Load config from a JSON or TOML file."""
    if not config_path.exists():
        return None

    try:
        with open(config_path, encoding="utf-8") as f:
            if config_path.suffix.lower() == ".toml":
                return toml.load(f)
            elif config_path.suffix.lower() == ".json":
                return json.load(f)
    except (OSError, ValueError, toml.TomlDecodeError) as e:
        console.print(
            f"⚠️  Error loading config from {config_path}: {e}", style="yellow"
        )

    return None


def find_config_file() -> Optional[Path]:
    """Find config file in standard locations."""
    locations = [
        Path.cwd() / ".compat-probe.json",
        Path.cwd() / ".compat-probe.toml",
        Path.home() / ".config" / "compat-probe" / "config.json",
        Path.home() / ".config" / "compat-probe" / "config.toml",
    ]

    for location in locations:
        if location.exists():
            return location

    return None


def load_environment_overrides(config: ProbeConfig) -> None:
    """Load environment variable overrides."""

    def get_env_float(key: str) -> Optional[float]:
        try:
            return float(os.environ[key]) if key in os.environ else None
        except ValueError:
            console.print(f"⚠️  Invalid float value for {key}, using default", style="yellow")
            return None

    if maven := os.environ.get("COMPAT_PROBE_MAVEN"):
        config.build.maven_executable = maven

    if repository_url := os.environ.get("COMPAT_PROBE_REPOSITORY_URL"):
        config.resolver.repository_url = repository_url
    if local_repository := os.environ.get("COMPAT_PROBE_LOCAL_REPOSITORY"):
        config.resolver.local_repository = local_repository
    if connect_timeout := get_env_float("COMPAT_PROBE_CONNECT_TIMEOUT"):
        config.resolver.connect_timeout = connect_timeout
    if read_timeout := get_env_float("COMPAT_PROBE_READ_TIMEOUT"):
        config.resolver.read_timeout = read_timeout

    if on_missing := os.environ.get("COMPAT_PROBE_ON_MISSING"):
        config.mutation.on_missing = on_missing.lower()

    if log_level := os.environ.get("COMPAT_PROBE_LOG_LEVEL"):
        config.logging.log_level = log_level.upper()


def apply_config_section(
    config: Any, section_data: Dict[str, Any], section_name: str
) -> None:
    """Apply configuration from dictionary to config section."""
    for key, value in section_data.items():
        if hasattr(config, key):
            setattr(config, key, value)
        else:
            console.print(
                f"⚠️  Unknown config key in {section_name}: {key}", style="yellow"
            )


def apply_config_data(config: ProbeConfig, file_config: Dict[str, Any]) -> None:
    """Apply every known section of a loaded config mapping."""
    for section_name in ("build", "resolver", "mutation", "logging"):
        if section_name in file_config:
            apply_config_section(
                getattr(config, section_name), file_config[section_name], section_name
            )


def load_config(config_file: Optional[Path] = None) -> ProbeConfig:
    """
    Load configuration from file and environment.

    Raises:
        ConfigurationError: If an explicitly given ``config_file`` cannot be loaded
    """
    global _global_config

    if _global_config is not None and config_file is None:
        return _global_config

    config = ProbeConfig()

    explicit = config_file is not None
    config_file = config_file or find_config_file()
    if config_file:
        file_config = load_config_file(config_file)
        if file_config is None and explicit:
            raise ConfigurationError(f"Could not load config from {config_file}")
        if file_config:
            apply_config_data(config, file_config)

    load_environment_overrides(config)

    validation_errors = validate_config_values(config)
    if validation_errors:
        console.print("⚠️  Configuration validation errors:", style="red")
        for error in validation_errors:
            console.print(f"  • {error}", style="red")
        console.print("Using default values for invalid settings.", style="yellow")
        _restore_invalid_defaults(config, validation_errors)

    _global_config = config
    return config


def _restore_invalid_defaults(config: ProbeConfig, errors: List[str]) -> None:
    defaults = ProbeConfig()
    for error in errors:
        section_name, key = error.split(" ", 1)[0].split(".", 1)
        setattr(
            getattr(config, section_name),
            key,
            getattr(getattr(defaults, section_name), key),
        )


def get_config() -> ProbeConfig:
    """Get the global configuration instance."""
    global _global_config
    if _global_config is None:
        _global_config = load_config()
    return _global_config


def reset_config() -> None:
    """Reset the global configuration (useful for testing)."""
    global _global_config
    _global_config = None


def create_sample_config() -> str:
    """Generate a sample configuration file with every default spelled out."""
    return json.dumps(ProbeConfig().to_dict(), indent=2)
