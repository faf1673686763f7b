from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, Field, field_validator, model_validator

from covergen.synthesis.canvas import BACKENDS
from covergen.synthesis.formats import FORMATS, OutputFormat
from covergen.synthesis.parameters import StyleOverrides


class GenerationConfig(BaseModel):
    formats: List[str] = Field(default_factory=lambda: ["landscape", "square"])
    crop_mode: Literal["direct", "resize"] = "direct"
    min_stroke: float = Field(default=0.5, gt=0)
    max_stroke: float = Field(default=1.5, gt=0)
    backend: str = "pillow"
    master_size: int = Field(default=1200, gt=0)

    @field_validator("formats")
    @classmethod
    def _known_formats(cls, value: List[str]) -> List[str]:
        unknown = [name for name in value if name not in FORMATS]
        if unknown:
            raise ValueError(f"unknown formats {unknown}, choose from {sorted(FORMATS)}")
        if not value:
            raise ValueError("at least one format is required")
        return value

    @field_validator("backend")
    @classmethod
    def _known_backend(cls, value: str) -> str:
        if value not in BACKENDS:
            raise ValueError(f"unknown backend {value!r}, choose from {sorted(BACKENDS)}")
        return value

    @model_validator(mode="after")
    def _stroke_order(self) -> "GenerationConfig":
        if self.min_stroke > self.max_stroke:
            raise ValueError("min_stroke must not exceed max_stroke")
        return self


class OutputConfig(BaseModel):
    directory: str = "output"
    filename_pattern: str = "{id}-{format}.png"


class LoggingConfig(BaseModel):
    log_dir: Optional[str] = None
    log_level: Literal["debug", "info", "warn", "error"] = "info"
    console: bool = True


class SourceConfig(BaseModel):
    type: Literal["file", "directory", "wordpress"] = "file"
    path: Optional[str] = None
    url: Optional[str] = None
    extensions: Tuple[str, ...] = (".txt", ".html", ".md")
    recursive: bool = False
    posts_per_batch: int = Field(default=100, gt=0, le=100)


class AppConfig(BaseModel):
    generation: GenerationConfig = Field(default_factory=GenerationConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    source: SourceConfig = Field(default_factory=SourceConfig)

    def style_overrides(self) -> StyleOverrides:
        return StyleOverrides(
            min_stroke_width=self.generation.min_stroke,
            max_stroke_width=self.generation.max_stroke,
        )

    def resolve_formats(self) -> List[OutputFormat]:
        return [FORMATS[name] for name in self.generation.formats]

    def output_path(self, item_id: str, format_name: str) -> Path:
        name = self.output.filename_pattern.replace("{id}", item_id).replace("{format}", format_name)
        return Path(self.output.directory) / name


def deep_merge(base: Dict[str, Any], extra: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in extra.items():
        if value is None:
            continue
        if isinstance(value, dict):
            current = merged.get(key)
            merged[key] = deep_merge(current if isinstance(current, dict) else {}, value)
        else:
            merged[key] = value
    return merged


def load_config(path: Optional[Path] = None, overrides: Optional[Dict[str, Any]] = None) -> AppConfig:
    data: Dict[str, Any] = {}
    if path is not None:
        with Path(path).open("r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a JSON object")
    if overrides:
        data = deep_merge(data, overrides)
    return AppConfig.model_validate(data)
