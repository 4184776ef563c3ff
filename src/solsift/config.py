"""Configuration loading and management for solsift.

Configuration sources are merged in priority order (lowest to highest):
    1. Defaults (defined in AnalysisConfig)
    2. Project config (solsift.toml in the project root)
    3. Explicit config file
    4. Environment variables (SOLSIFT_* prefix)
    5. CLI / API overrides (passed as kwargs)

Example:
    >>> config = load_config(scope=["src"], min_severity="low")
    >>> config.min_severity
    <Severity.LOW: 'Low'>
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Any, Optional, get_type_hints

from .exceptions import InvalidConfigError, InvalidPathError
from .models import Severity

CONFIG_FILENAME = "solsift.toml"


@dataclass(frozen=True)
class ProtocolConfig:
    """Describes what the analysed protocol interacts with.

    Each flag gates a group of detectors that only make sense when the
    protocol touches the corresponding kind of asset or chain. All flags
    default to enabled, so nothing is suppressed unless the user opts out.

    Attributes:
        uses_fot_tokens: Fee-on-transfer tokens may be deposited
        uses_weird_erc20: Non-standard ERC20s (USDT and friends) may be used
        uses_native_token: The protocol receives or sends native ether
        uses_l2: The protocol is deployed on an L2 rollup
        uses_nft: The protocol mints or holds NFTs
    """

    uses_fot_tokens: bool = True
    uses_weird_erc20: bool = True
    uses_native_token: bool = True
    uses_l2: bool = True
    uses_nft: bool = True

    def __post_init__(self) -> None:
        for f in fields(self):
            if not isinstance(getattr(self, f.name), bool):
                raise ValueError(f"protocol.{f.name} must be true or false")

    def enabled_features(self) -> frozenset[str]:
        """Names of the flags that are switched on."""
        return frozenset(f.name for f in fields(self) if getattr(self, f.name))

    @classmethod
    def feature_names(cls) -> tuple[str, ...]:
        return tuple(f.name for f in fields(cls))


@dataclass(frozen=True)
class AnalysisConfig:
    """Configuration for one analysis run.

    Attributes:
        Scope:
            scope: Files or directories to analyse (empty = project default)
            exclude: Paths or glob patterns removed from the scope
            root: Project root (None = detect by walking up from the scope)

        Detector selection:
            min_severity: Lowest severity whose detectors run
            exclude_detectors: Detector ids that never run
            protocol: Feature flags gating protocol-specific detectors

        Import resolution:
            remappings: Explicit ``prefix=target`` rules (highest priority)
            config_remappings: Rules read from the tool config file

        Performance:
            workers: Worker threads (None = auto-detect, 1 = sequential)
    """

    scope: list[str] = field(default_factory=list)
    exclude: list[str] = field(default_factory=lambda: ["lib", "test"])
    root: Optional[str] = None

    min_severity: Severity = Severity.NC
    exclude_detectors: list[str] = field(default_factory=list)
    protocol: ProtocolConfig = field(default_factory=ProtocolConfig)

    remappings: list[str] = field(default_factory=list)
    config_remappings: list[str] = field(default_factory=list)

    workers: Optional[int] = None

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        object.__setattr__(self, "min_severity", Severity.parse(self.min_severity))

        if self.workers is not None and self.workers < 1:
            raise ValueError("workers must be at least 1")

        for name in ("scope", "exclude", "exclude_detectors", "remappings", "config_remappings"):
            value = getattr(self, name)
            if isinstance(value, str) or not all(isinstance(v, str) for v in value):
                raise ValueError(f"{name} must be a list of strings")

        for rule in [*self.remappings, *self.config_remappings]:
            prefix, sep, _target = rule.partition("=")
            if not sep or not prefix.strip():
                raise ValueError(f"remapping '{rule}' must have the form prefix=target")

        if not isinstance(self.protocol, ProtocolConfig):
            raise ValueError("protocol must be a ProtocolConfig")


def load_config(
    config_file: Optional[Path] = None, root: Optional[Path] = None, **overrides: Any
) -> AnalysisConfig:
    """Load configuration with auto-discovery and merging.

    Args:
        config_file: Optional explicit config file path
        root: Project root; also the directory searched for ``solsift.toml``
            (defaults to cwd, leaving the root to be detected)
        **overrides: Direct overrides (typically from CLI flags). A
            ``remappings`` override is treated as explicit; remappings read
            from files land in ``config_remappings``.

    Returns:
        Validated AnalysisConfig instance

    Raises:
        InvalidPathError: If the explicit config file is missing
        InvalidConfigError: If a file, env var or override is invalid
    """
    merged: dict[str, Any] = {}

    search_root = root if root is not None else Path.cwd()
    project_config = search_root / CONFIG_FILENAME
    if project_config.is_file() and (
        config_file is None or project_config.resolve() != Path(config_file).resolve()
    ):
        _merge_file(merged, project_config)

    if config_file is not None:
        config_file = Path(config_file)
        if not config_file.is_file():
            raise InvalidPathError(config_file, "config file not found")
        _merge_file(merged, config_file)

    merged.update(_load_env_vars())

    protocol_overrides = overrides.pop("protocol", None)
    merged.update({k: v for k, v in overrides.items() if v is not None})
    if root is not None:
        merged["root"] = str(root)

    protocol = merged.pop("protocol", {})
    if isinstance(protocol_overrides, ProtocolConfig):
        protocol = protocol_overrides
    elif isinstance(protocol_overrides, dict):
        protocol = {**protocol, **protocol_overrides}
    if isinstance(protocol, dict):
        try:
            protocol = ProtocolConfig(**protocol)
        except (TypeError, ValueError) as e:
            raise InvalidConfigError("protocol", protocol, str(e))
    merged["protocol"] = protocol

    try:
        return AnalysisConfig(**merged)
    except (TypeError, ValueError) as e:
        raise InvalidConfigError("config", merged, str(e))


def _merge_file(merged: dict[str, Any], path: Path) -> None:
    try:
        data = _load_toml_file(path)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise InvalidConfigError(str(path), "<file>", str(e))

    # Remappings in a config file rank below explicit ones.
    if "remappings" in data:
        data["config_remappings"] = data.pop("remappings")
    if "protocol" in data:
        protocol = data.pop("protocol")
        if not isinstance(protocol, dict):
            raise InvalidConfigError("protocol", protocol, "must be a table")
        merged["protocol"] = {**merged.get("protocol", {}), **protocol}
    merged.update(data)


def _load_env_vars() -> dict[str, Any]:
    """Load configuration from SOLSIFT_* environment variables.

    Supported environment variables:
        SOLSIFT_MIN_SEVERITY: High/Medium/Low/Gas/NC
        SOLSIFT_WORKERS: int
        SOLSIFT_ROOT: path
        SOLSIFT_SCOPE, SOLSIFT_EXCLUDE, SOLSIFT_EXCLUDE_DETECTORS,
        SOLSIFT_REMAPPINGS: comma-separated lists

    Returns:
        Dict of field_name -> parsed_value for any SOLSIFT_* vars found.
    """
    type_hints = get_type_hints(AnalysisConfig)

    result: dict[str, Any] = {}

    for field_name in AnalysisConfig.__dataclass_fields__:
        env_key = f"SOLSIFT_{field_name.upper()}"
        env_value = os.environ.get(env_key)

        if env_value is None:
            continue

        type_hint = type_hints.get(field_name)
        if type_hint is None:
            continue

        try:
            parsed = _parse_env_value(env_value, type_hint)
        except ValueError as e:
            raise InvalidConfigError(env_key, env_value, str(e))
        if parsed is not None:
            # Environment remappings are user supplied, same tier as the file.
            if field_name == "remappings":
                field_name = "config_remappings"
            result[field_name] = parsed

    return result


def _parse_env_value(value: str, type_hint: Any) -> Any:
    """Parse environment variable string to the correct type.

    Returns:
        Parsed value or None if the field can't be set from the environment

    Raises:
        ValueError: If value can't be parsed to expected type
    """
    origin = getattr(type_hint, "__origin__", None)

    args = getattr(type_hint, "__args__", ())
    if type(None) in args:
        non_none_types = [t for t in args if t is not type(None)]
        if non_none_types:
            type_hint = non_none_types[0]
            origin = getattr(type_hint, "__origin__", None)

    if origin is list:
        return [item.strip() for item in value.split(",") if item.strip()]

    if type_hint is int:
        return int(value)

    if isinstance(type_hint, type) and issubclass(type_hint, Enum):
        return value

    if type_hint is str:
        return value

    return None


def _load_toml_file(path: Path) -> dict:
    with open(path, "rb") as f:
        return tomllib.load(f)


DEFAULT_CONFIG_TEMPLATE = """\
# solsift configuration

# Files or directories to analyse. Empty = the project's default source dir.
scope = []

# Paths or glob patterns excluded from the scope.
exclude = ["lib", "test"]

# Lowest severity to report: High, Medium, Low, Gas or NC.
min_severity = "NC"

# Detector ids that never run.
exclude_detectors = []

# Import remappings in the form "prefix=target".
remappings = []

[protocol]
uses_fot_tokens = true
uses_weird_erc20 = true
uses_native_token = true
uses_l2 = true
uses_nft = true
"""


def init_config_file(directory: Path, overwrite: bool = False) -> Path:
    """Write a default ``solsift.toml`` into ``directory``."""
    target = Path(directory) / CONFIG_FILENAME
    if target.exists() and not overwrite:
        raise InvalidPathError(target, "config file already exists")
    target.write_text(DEFAULT_CONFIG_TEMPLATE, encoding="utf-8")
    return target
