"""Configuration module — frozen dataclass built from YAML, environment and CLI.

Precedence (lowest first): dataclass defaults, YAML file, environment
variables, command-line flags.
"""

import argparse
import dataclasses
import logging
import os
from dataclasses import dataclass

import yaml

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "1", "yes")


@dataclass(frozen=True)
class Config:
    host: str = "0.0.0.0"
    port: int = 12201
    max_chunk_size: int = 8192
    max_receives: int = 128
    receive_timeout: float = 1.0
    log_dir: str = "./logs"
    log_filename: str = "gelf.log"
    flush_count: int = 100
    flush_timeout_sec: int = 5
    max_errors: int = 100
    dashboard_enabled: bool = True
    dashboard_port: int = 8080
    log_level: str = "INFO"


_FIELD_TYPES = {f.name: f.type for f in dataclasses.fields(Config)}
_CONVERTERS = {int: int, float: float, bool: _parse_bool, str: str}


def _convert(name: str, value):
    return _CONVERTERS[_FIELD_TYPES[name]](value)


def load_yaml(path: str) -> dict:
    """Load config overrides from a YAML mapping.

    Unknown keys are dropped with a warning; keys without a value are left unset.
    """
    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at top level")

    values = {}
    for key, value in data.items():
        if key not in _FIELD_TYPES:
            logger.warning("Ignoring unknown config key %r in %s", key, path)
            continue
        if value is None:
            continue
        values[key] = _convert(key, value)
    return values


def _from_env() -> dict:
    values = {}
    for name in _FIELD_TYPES:
        raw = os.environ.get(f"GELF_{name.upper()}")
        if raw is not None:
            values[name] = _convert(name, raw)
    return values


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="GELF UDP receiver")
    parser.add_argument("--config", type=str, default=None, help="YAML config file")
    parser.add_argument("--host", type=str, default=None)
    parser.add_argument("--port", type=int, default=None)
    parser.add_argument("--max-chunk-size", type=int, default=None)
    parser.add_argument("--max-receives", type=int, default=None)
    parser.add_argument("--receive-timeout", type=float, default=None)
    parser.add_argument("--log-dir", type=str, default=None)
    parser.add_argument("--log-filename", type=str, default=None)
    parser.add_argument("--dashboard-port", type=int, default=None)
    parser.add_argument("--no-dashboard", action="store_true", default=False)
    parser.add_argument("--log-level", type=str, default=None, choices=LOG_LEVELS)
    return parser


def load_config(argv=None) -> Config:
    """Build Config from the YAML file, env vars and CLI args."""
    args = _build_parser().parse_args(argv)

    values = {}
    config_path = args.config or os.environ.get("GELF_CONFIG_PATH")
    if config_path:
        values.update(load_yaml(config_path))
    values.update(_from_env())

    cli = {
        name: getattr(args, name)
        for name in ("host", "port", "max_chunk_size", "max_receives", "receive_timeout",
                     "log_dir", "log_filename", "dashboard_port", "log_level")
        if getattr(args, name) is not None
    }
    if args.no_dashboard:
        cli["dashboard_enabled"] = False
    values.update(cli)

    if "log_level" in values:
        values["log_level"] = values["log_level"].upper()
    return Config(**values)
