"""Configuration file loading and merging.

Handles loading configuration from YAML files with:
- Project-level config (sonarlaunch.yml, .sonarlaunch.yml)
- Global config (~/.sonar/sonarlaunch.yml)
- Environment variable expansion (${VAR})
- Scanner properties from SONARQUBE_SCANNER_PARAMS (JSON object)
- Config merging with proper precedence
"""

from __future__ import annotations

import json
import os
import re
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import urlsplit

import yaml

from sonarlaunch.bootstrap.paths import SonarPaths
from sonarlaunch.config.models import (
    DOWNLOAD_STYLES,
    LaunchConfig,
    RuntimeSettings,
)
from sonarlaunch.core.errors import ConfigError
from sonarlaunch.core.logging import ENGINE_LEVELS, get_logger

LOGGER = get_logger(__name__)

PROJECT_CONFIG_NAMES = ["sonarlaunch.yml", "sonarlaunch.yaml", ".sonarlaunch.yml", ".sonarlaunch.yaml"]

SCANNER_PARAMS_ENV = "SONARQUBE_SCANNER_PARAMS"
TOKEN_ENV = "SONAR_TOKEN"
HOST_URL_ENV = "SONAR_HOST_URL"

HOST_URL_PROPERTY = "sonar.host.url"

VALID_TOP_LEVEL_KEYS = frozenset({
    "server_url",
    "token",
    "jvm_options",
    "ca_path",
    "properties",
    "log_level",
    "verbose",
    "http_timeout",
    "runtime",
})

VALID_RUNTIME_KEYS = frozenset({"digest_fields", "binary_path_fields", "download_style"})

# Environment variable pattern: ${VAR} or ${VAR:-default}
ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+)(?::-([^}]*))?\}")


def load_config(
    project_root: Path,
    cli_config_path: Optional[Path] = None,
    cli_overrides: Optional[Dict[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> LaunchConfig:
    """Load configuration with proper precedence.

    Precedence (highest to lowest):
    1. CLI flags (cli_overrides)
    2. Custom config file (cli_config_path) OR project config (sonarlaunch.yml)
    3. SONARQUBE_SCANNER_PARAMS / SONAR_TOKEN / SONAR_HOST_URL environment
    4. Global config (~/.sonar/sonarlaunch.yml)
    5. Built-in defaults

    Args:
        project_root: Project root directory for finding sonarlaunch.yml.
        cli_config_path: Optional path to custom config file (--config flag).
        cli_overrides: Dict of CLI flag overrides.
        environ: Environment to read (defaults to os.environ).

    Returns:
        Merged LaunchConfig instance.

    Raises:
        ConfigError: If a config file is missing, invalid, or has bad values.
    """
    env = os.environ if environ is None else environ
    sources: List[str] = []
    merged: Dict[str, Any] = {}

    # Layer 1: Global config
    global_path = SonarPaths.default(env).global_config
    if global_path.exists():
        try:
            global_dict = load_yaml_file(global_path, env)
            validate_config(global_dict, source=str(global_path))
            merged = merge_configs(merged, global_dict)
            sources.append(f"global:{global_path}")
            LOGGER.debug(f"Loaded global config from {global_path}")
        except (ConfigError, yaml.YAMLError) as e:
            LOGGER.warning(f"Failed to load global config: {e}")

    # Layer 2: Environment
    env_dict = config_from_environment(env)
    if env_dict:
        merged = merge_configs(merged, env_dict)
        sources.append("environment")

    # Layer 3: Project or custom config
    config_path = cli_config_path
    if config_path is None:
        config_path = find_project_config(project_root)
    elif not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    if config_path is not None:
        try:
            project_dict = load_yaml_file(config_path, env)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e
        validate_config(project_dict, source=str(config_path))
        merged = merge_configs(merged, project_dict)
        sources.append(f"project:{config_path}")
        LOGGER.debug(f"Loaded project config from {config_path}")

    # Layer 4: CLI overrides
    if cli_overrides:
        merged = merge_configs(merged, cli_overrides)
        sources.append("cli")
        LOGGER.debug("Applied CLI overrides")

    config = dict_to_config(merged, project_root)
    config.sources = sources
    LOGGER.debug(f"Config loaded from sources: {sources}")
    return config


def find_project_config(project_root: Path) -> Optional[Path]:
    """Find a config file in the project root."""
    for name in PROJECT_CONFIG_NAMES:
        config_path = project_root / name
        if config_path.exists():
            return config_path
    return None


def config_from_environment(environ: Mapping[str, str]) -> Dict[str, Any]:
    """Read the launcher settings carried by environment variables.

    Raises:
        ConfigError: If SONARQUBE_SCANNER_PARAMS is not a JSON object.
    """
    result: Dict[str, Any] = {}

    raw_params = environ.get(SCANNER_PARAMS_ENV)
    if raw_params:
        try:
            params = json.loads(raw_params)
        except json.JSONDecodeError as e:
            raise ConfigError(f"{SCANNER_PARAMS_ENV} is not valid JSON: {e}") from e
        if not isinstance(params, dict):
            raise ConfigError(f"{SCANNER_PARAMS_ENV} must be a JSON object")
        result["properties"] = {str(k): _stringify(v) for k, v in params.items()}

    if environ.get(TOKEN_ENV):
        result["token"] = environ[TOKEN_ENV]
    if environ.get(HOST_URL_ENV):
        result["server_url"] = environ[HOST_URL_ENV]
    return result


def load_yaml_file(path: Path, environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """Load and parse a YAML config file.

    Performs environment variable expansion on string values.

    Raises:
        yaml.YAMLError: If YAML parsing fails.
        ConfigError: If the document is not a mapping.
    """
    with open(path, "r", encoding="utf-8") as f:
        content = f.read()

    data = yaml.safe_load(content)

    if data is None:
        return {}

    if not isinstance(data, dict):
        raise ConfigError(f"Config file must be a YAML mapping, got {type(data).__name__}")

    return expand_env_vars(data, os.environ if environ is None else environ)


def expand_env_vars(data: Any, environ: Mapping[str, str]) -> Any:
    """Recursively expand ${VAR} and ${VAR:-default} in config values."""
    if isinstance(data, dict):
        return {k: expand_env_vars(v, environ) for k, v in data.items()}
    elif isinstance(data, list):
        return [expand_env_vars(item, environ) for item in data]
    elif isinstance(data, str):
        return ENV_VAR_PATTERN.sub(lambda match: _env_var_replacer(match, environ), data)
    else:
        return data


def _env_var_replacer(match: re.Match[str], environ: Mapping[str, str]) -> str:
    """Replace environment variable reference with its value."""
    var_name = match.group(1)
    default_value = match.group(2)

    value = environ.get(var_name)
    if value is not None:
        return value
    if default_value is not None:
        return default_value

    LOGGER.warning(f"Environment variable ${var_name} is not set and has no default")
    return ""


def merge_configs(base: Dict[str, Any], overlay: Dict[str, Any]) -> Dict[str, Any]:
    """Deep merge two config dicts, with overlay taking precedence.

    Rules:
    - Scalar values: overlay replaces base
    - Lists: overlay replaces base (no merging)
    - Dicts: recursive merge
    """
    result = base.copy()

    for key, overlay_value in overlay.items():
        if key in result and isinstance(result[key], dict) and isinstance(overlay_value, dict):
            result[key] = merge_configs(result[key], overlay_value)
        else:
            result[key] = overlay_value

    return result


def validate_config(data: Dict[str, Any], source: str) -> None:
    """Warn about unknown keys and reject values of the wrong shape.

    Raises:
        ConfigError: If a recognized key has an invalid value.
    """
    for key in data:
        if key not in VALID_TOP_LEVEL_KEYS:
            LOGGER.warning(f"{source}: unknown config key '{key}' ignored")

    properties = data.get("properties")
    if properties is not None and not isinstance(properties, dict):
        raise ConfigError(f"{source}: 'properties' must be a mapping")

    jvm_options = data.get("jvm_options")
    if jvm_options is not None and not isinstance(jvm_options, list):
        raise ConfigError(f"{source}: 'jvm_options' must be a list")

    log_level = data.get("log_level")
    if log_level is not None and str(log_level).upper() not in ENGINE_LEVELS:
        raise ConfigError(
            f"{source}: 'log_level' must be one of {', '.join(ENGINE_LEVELS)}, got {log_level}"
        )

    runtime = data.get("runtime")
    if runtime is None:
        return
    if not isinstance(runtime, dict):
        raise ConfigError(f"{source}: 'runtime' must be a mapping")
    for key in runtime:
        if key not in VALID_RUNTIME_KEYS:
            LOGGER.warning(f"{source}: unknown config key 'runtime.{key}' ignored")
    for key in ("digest_fields", "binary_path_fields"):
        names = runtime.get(key)
        if names is None:
            continue
        if not isinstance(names, list) or not all(isinstance(name, str) for name in names):
            raise ConfigError(f"{source}: 'runtime.{key}' must be a list of strings")
    style = runtime.get("download_style")
    if style is not None and style not in DOWNLOAD_STYLES:
        raise ConfigError(
            f"{source}: 'runtime.download_style' must be one of {', '.join(DOWNLOAD_STYLES)}"
        )


def dict_to_config(data: Dict[str, Any], project_root: Path) -> LaunchConfig:
    """Convert a merged config dict into a LaunchConfig.

    A ``sonar.host.url`` scanner property overrides ``server_url``.
    """
    properties = {str(k): _stringify(v) for k, v in (data.get("properties") or {}).items()}
    server_url = str(properties.get(HOST_URL_PROPERTY) or data.get("server_url") or "").rstrip("/")
    if server_url and urlsplit(server_url).scheme not in ("http", "https"):
        raise ConfigError(f"Server URL must start with http:// or https://, got {server_url!r}")

    runtime_data = data.get("runtime") or {}
    runtime = RuntimeSettings()
    if "digest_fields" in runtime_data:
        runtime.digest_fields = tuple(runtime_data["digest_fields"])
    if "binary_path_fields" in runtime_data:
        runtime.binary_path_fields = tuple(runtime_data["binary_path_fields"])
    if "download_style" in runtime_data:
        runtime.download_style = runtime_data["download_style"]

    ca_path = data.get("ca_path")
    timeout = data.get("http_timeout")
    try:
        http_timeout = float(timeout) if timeout is not None else None
    except (TypeError, ValueError) as e:
        raise ConfigError(f"'http_timeout' must be a number, got {timeout!r}") from e

    return LaunchConfig(
        server_url=server_url,
        token=data.get("token") or None,
        jvm_options=[str(opt) for opt in data.get("jvm_options") or []],
        ca_path=Path(ca_path) if ca_path else None,
        properties=properties,
        project_base_dir=project_root,
        log_level=str(data.get("log_level", "INFO")).upper(),
        verbose=_parse_bool(data.get("verbose", False), "verbose"),
        http_timeout=http_timeout,
        runtime=runtime,
    )


def _parse_bool(value: Any, key: str) -> bool:
    """Accept a YAML boolean or the strings true/false in any case."""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    raise ConfigError(f"'{key}' must be true or false, got {value!r}")


def _stringify(value: Any) -> str:
    """Render a property value the way the engine expects it."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, list):
        return ",".join(_stringify(item) for item in value)
    return str(value)
