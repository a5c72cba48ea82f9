"""Configuration loader that parses and validates user-provided TOML."""

from __future__ import annotations

import math
import tomllib
from dataclasses import fields
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Mapping

from .carousel_engine.catalog import ASPECT_RATIOS, COMPRESSION_PRESETS, EXPORT_RESOLUTIONS
from .datatypes import (
    AppConfig,
    CLIConfig,
    ExportConfig,
    FitMode,
    PathsConfig,
    RenderConfig,
)


class ConfigError(ValueError):
    """Raised when the configuration file is malformed or fails validation."""


_SECTIONS: Dict[str, type] = {
    "render": RenderConfig,
    "export": ExportConfig,
    "paths": PathsConfig,
    "cli": CLIConfig,
}


def _coerce_bool(value: Any, dotted_key: str) -> bool:
    """Return a bool, coercing simple 0/1 representations when necessary."""

    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"0", "1"}:
            return normalized == "1"
        if normalized in {"true", "false"}:
            return normalized == "true"
    raise ConfigError(f"{dotted_key} must be a boolean (use true/false).")


def _coerce_enum(value: Any, dotted_key: str, enum_type: type[Enum]) -> Enum:
    """Return an enum member, coercing string values case-insensitively."""

    if isinstance(value, enum_type):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        for member in enum_type:
            member_value = str(member.value).lower()
            if normalized == member_value:
                return member
    raise ConfigError(
        f"{dotted_key} must be one of: {', '.join(str(member.value) for member in enum_type)}"
    )


def _coerce_number(value: Any, dotted_key: str) -> float:
    if isinstance(value, bool):
        raise ConfigError(f"{dotted_key} must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{dotted_key} must be a number") from exc
    if not math.isfinite(number):
        raise ConfigError(f"{dotted_key} must be a finite number")
    return number


def _sanitize_section(raw: dict[str, Any], name: str, cls):
    """
    Coerce a raw TOML table into an instance of ``cls`` with cleaned booleans and enums.

    Parameters:
        raw (dict[str, Any]): Raw TOML section data.
        name (str): Section name used when reporting validation errors.
        cls: Dataclass type used to construct the section object.

    Returns:
        Any: Instantiated dataclass populated with values from ``raw``.

    Raises:
        ConfigError: If the section is not a table or contains invalid keys or values.
    """
    if not isinstance(raw, dict):
        raise ConfigError(f"[{name}] must be a table")
    cleaned: Dict[str, Any] = {}
    cls_fields = {field.name: field for field in fields(cls)}
    bool_fields = {name for name, field in cls_fields.items() if field.type is bool}
    number_fields = {name for name, field in cls_fields.items() if field.type in (int, float)}
    enum_fields = {
        field_name: field.type
        for field_name, field in cls_fields.items()
        if isinstance(field.type, type) and issubclass(field.type, Enum)
    }
    for key, value in raw.items():
        if key in bool_fields:
            cleaned[key] = _coerce_bool(value, f"{name}.{key}")
        elif key in enum_fields:
            cleaned[key] = _coerce_enum(value, f"{name}.{key}", enum_fields[key])
        elif key in number_fields:
            number = _coerce_number(value, f"{name}.{key}")
            if cls_fields[key].type is int:
                if not number.is_integer():
                    raise ConfigError(f"{name}.{key} must be an integer")
                number = int(number)
            cleaned[key] = number
        else:
            cleaned[key] = value
    try:
        return cls(**cleaned)
    except TypeError as exc:
        raise ConfigError(f"Invalid keys in [{name}]: {exc}") from exc


def _require_catalog_id(value: Any, dotted_key: str, catalog: Mapping[str, Any]) -> str:
    text = str(value).strip()
    if text not in catalog:
        raise ConfigError(f"{dotted_key} must be one of: {', '.join(catalog)}")
    return text


def validate_config(app: AppConfig) -> AppConfig:
    """
    Validate cross-field rules and normalise values in place.

    Called by :func:`load_config` and again by the CLI after flag overrides
    are applied.

    Raises:
        ConfigError: If any rule is violated.
    """

    render = app.render
    render.aspect = _require_catalog_id(render.aspect, "render.aspect", ASPECT_RATIOS)
    render.fit_mode = _coerce_enum(render.fit_mode, "render.fit_mode", FitMode)
    render.blur_radius = _coerce_number(render.blur_radius, "render.blur_radius")
    if render.blur_radius < 0:
        raise ConfigError("render.blur_radius must be >= 0")
    render.background_brightness = _coerce_number(
        render.background_brightness, "render.background_brightness"
    )
    if not 0 <= render.background_brightness <= 1:
        raise ConfigError("render.background_brightness must be between 0 and 1")

    export = app.export
    export.resolution = _require_catalog_id(export.resolution, "export.resolution", EXPORT_RESOLUTIONS)
    export.compression = _require_catalog_id(
        export.compression, "export.compression", COMPRESSION_PRESETS
    )
    if export.workers < 0:
        raise ConfigError("export.workers must be >= 0 (0 selects automatically)")

    output_dir = str(app.paths.output_dir).strip()
    if not output_dir:
        raise ConfigError("paths.output_dir must be set")
    app.paths.output_dir = output_dir
    return app


def load_config(path: str | Path | None = None) -> AppConfig:
    """
    Load and validate an application configuration from a TOML file.

    Reads the file at ``path``, parses it as UTF-8 TOML (BOM is accepted),
    coerces every known section and validates the result. When ``path`` is
    ``None`` the defaults are validated and returned.

    Returns:
        AppConfig: The validated and normalized application configuration.

    Raises:
        ConfigError: If the file cannot be read, is not UTF-8, TOML parsing fails,
            contains unknown sections, or any validation rule is violated.
    """

    if path is None:
        return validate_config(AppConfig())

    try:
        with open(path, "rb") as handle:
            raw_bytes = handle.read()
    except OSError as exc:
        raise ConfigError(f"Unable to read config file '{path}': {exc.strerror or exc}") from exc
    if raw_bytes.startswith(b"\xef\xbb\xbf"):
        raw_bytes = raw_bytes[3:]
    try:
        raw = tomllib.loads(raw_bytes.decode("utf-8"))
    except UnicodeDecodeError as exc:
        raise ConfigError("Configuration file must be UTF-8 encoded") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Failed to parse TOML: {exc}") from exc

    unknown = sorted(set(raw) - set(_SECTIONS))
    if unknown:
        raise ConfigError(f"Unknown config section(s): {', '.join(unknown)}")

    app = AppConfig(
        **{
            name: _sanitize_section(raw.get(name, {}), name, cls)
            for name, cls in _SECTIONS.items()
        }
    )
    return validate_config(app)
