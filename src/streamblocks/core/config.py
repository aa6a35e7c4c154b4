"""Configuration loading (TOML, env vars, .env)."""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from streamblocks.core.rules import build_rule_table
from streamblocks.errors import ConfigError
from streamblocks.types.config import (
    DEFAULT_RULE_ORDER,
    DisplayMathPolicy,
    EndOfStreamPolicy,
    PumpConfig,
    SegmenterConfig,
    SourceConfig,
)

logger = logging.getLogger(__name__)

# Load .env from current directory (and parents), won't override existing env vars
load_dotenv()

CONFIG_DIR_NAME = ".streamblocks"

ENV_MAP = {
    "dashscope": "DASHSCOPE_API_KEY",
    "openai": "OPENAI_API_KEY",
}


def load_env_config() -> dict[str, Any]:
    """Load configuration from environment variables."""
    config: dict[str, Any] = {}

    if policy := os.environ.get("STREAMBLOCKS_DISPLAY_MATH"):
        config["display_math"] = policy
    if on_end := os.environ.get("STREAMBLOCKS_ON_END"):
        config["on_end"] = on_end
    if provider := os.environ.get("STREAMBLOCKS_PROVIDER"):
        config["provider"] = provider
    if model := os.environ.get("STREAMBLOCKS_MODEL"):
        config["model"] = model
    for provider_name, env_var in ENV_MAP.items():
        if key := os.environ.get(env_var):
            config[f"{provider_name}_api_key"] = key

    return config


def load_toml_config(cwd: str | None = None) -> dict[str, Any]:
    """Load the first ``.streamblocks/config.toml`` found.

    Searched in *cwd*, the process working directory, then the home directory.
    """
    search_dirs: list[Path] = []
    if cwd:
        search_dirs.append(Path(cwd))
    search_dirs.append(Path.cwd())
    search_dirs.append(Path.home())

    for d in search_dirs:
        toml_path = d / CONFIG_DIR_NAME / "config.toml"
        if not toml_path.exists():
            continue
        try:
            with open(toml_path, "rb") as f:
                return tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as exc:
            logger.warning("Cannot read config %s: %s", toml_path, exc)
    return {}


def _parse_enum(enum_cls: Any, value: Any, name: str) -> Any:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        valid = ", ".join(m.value for m in enum_cls)
        raise ConfigError(f"Invalid {name} '{value}' (expected one of: {valid})") from None


def _parse_flag(section: dict[str, Any], name: str, default: bool) -> bool:
    value = section.get(name, default)
    if not isinstance(value, bool):
        raise ConfigError(f"Invalid {name} '{value}' (expected true or false)")
    return value


def build_segmenter_config(
    display_math: str | None = None,
    rule_order: list[str] | None = None,
    *,
    cwd: str | None = None,
) -> SegmenterConfig:
    """Resolve segmenter settings: explicit args > env > TOML ``[segmenter]`` > defaults."""
    env = load_env_config()
    section = load_toml_config(cwd).get("segmenter", {})

    policy = display_math or env.get("display_math") or section.get("display_math")
    order = rule_order or section.get("rule_order")

    return SegmenterConfig(
        display_math=(
            _parse_enum(DisplayMathPolicy, policy, "display_math")
            if policy else DisplayMathPolicy.ANY
        ),
        rule_order=(
            tuple(rule.kind for rule in build_rule_table(order))
            if order else DEFAULT_RULE_ORDER
        ),
        split_prelude=_parse_flag(section, "split_prelude", True),
    )


def build_pump_config(
    on_end: str | None = None,
    *,
    cwd: str | None = None,
) -> PumpConfig:
    """Resolve pump settings: explicit args > env > TOML ``[pump]`` > defaults."""
    env = load_env_config()
    section = load_toml_config(cwd).get("pump", {})

    policy = on_end or env.get("on_end") or section.get("on_end")
    try:
        max_chars = int(section.get("max_buffer_chars", 0))
    except (TypeError, ValueError):
        raise ConfigError(
            f"Invalid max_buffer_chars '{section.get('max_buffer_chars')}'"
        ) from None

    return PumpConfig(
        on_end=(
            _parse_enum(EndOfStreamPolicy, policy, "on_end")
            if policy else EndOfStreamPolicy.FLUSH
        ),
        max_buffer_chars=max_chars,
        raise_source_errors=_parse_flag(section, "raise_source_errors", False),
    )


def resolve_api_key(provider: str, explicit_key: str | None = None, *, cwd: str | None = None) -> str | None:
    """Resolve API key for a provider from explicit value, environment, or config file."""
    if explicit_key:
        return explicit_key

    env_var = ENV_MAP.get(provider)
    if env_var:
        val = os.environ.get(env_var)
        if val:
            return val

    # Fallback: [source.<provider>] api_key in config.toml
    section = load_toml_config(cwd).get("source", {})
    provider_conf = section.get(provider, {})
    if isinstance(provider_conf, dict):
        key = provider_conf.get("api_key")
        if key:
            return str(key)
    return None


def build_source_config(
    provider: str | None = None,
    model: str | None = None,
    api_key: str | None = None,
    base_url: str | None = None,
    *,
    cwd: str | None = None,
) -> SourceConfig:
    """Resolve live-stream settings: explicit args > env > TOML ``[source]`` > defaults."""
    env = load_env_config()
    section = load_toml_config(cwd).get("source", {})

    resolved_provider = provider or env.get("provider") or section.get("provider") or "dashscope"
    provider_conf = section.get(resolved_provider, {})
    if not isinstance(provider_conf, dict):
        provider_conf = {}

    return SourceConfig(
        provider=resolved_provider,
        model=model or env.get("model") or provider_conf.get("model"),
        api_key=resolve_api_key(resolved_provider, api_key, cwd=cwd),
        base_url=base_url or provider_conf.get("base_url"),
        temperature=float(provider_conf.get("temperature", 0.8)),
        top_p=float(provider_conf.get("top_p", 0.8)),
    )
