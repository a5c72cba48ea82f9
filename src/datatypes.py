"""Configuration dataclasses for the carousel reformatting tool."""
from dataclasses import dataclass, field
from enum import Enum


class FitMode(str, Enum):
    """Strategies for mapping a source image onto a canvas of another aspect ratio."""

    CONTAIN = "contain"
    COVER = "cover"
    STRETCH = "stretch"


@dataclass
class RenderConfig:
    """Canvas target, fit strategy, and letterbox effect strength."""

    aspect: str = "4:5"
    fit_mode: FitMode = FitMode.CONTAIN
    blur_radius: float = 20.0
    background_brightness: float = 0.6


@dataclass
class ExportConfig:
    """Resolution tier, JPEG compression tier, and export worker settings."""

    resolution: str = "HD"
    compression: str = "high"
    enhance: bool = False
    workers: int = 0


@dataclass
class PathsConfig:
    """Filesystem paths configured by the user."""

    output_dir: str = "exports"


@dataclass
class CLIConfig:
    """CLI presentation controls."""

    progress: bool = True


@dataclass
class AppConfig:
    """Aggregated configuration loaded from the user-provided TOML file."""

    render: RenderConfig = field(default_factory=RenderConfig)
    export: ExportConfig = field(default_factory=ExportConfig)
    paths: PathsConfig = field(default_factory=PathsConfig)
    cli: CLIConfig = field(default_factory=CLIConfig)
