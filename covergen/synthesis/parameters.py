import math
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from covergen.synthesis.metrics import ContentMetrics

PALETTE_COUNT = 10
MIN_LAYERS = 3
MAX_LAYERS = 10
MIN_VERTICES = 3
MAX_VERTICES = 20


class StyleOverrides(BaseModel):
    model_config = ConfigDict(frozen=True)

    min_stroke_width: float = Field(default=0.5, gt=0)
    max_stroke_width: float = Field(default=1.5, gt=0)

    @model_validator(mode="after")
    def _check_order(self) -> "StyleOverrides":
        if self.min_stroke_width > self.max_stroke_width:
            raise ValueError("min_stroke_width must not exceed max_stroke_width")
        return self


class VisualParameters(BaseModel):
    model_config = ConfigDict(frozen=True)

    seed: int = Field(ge=0, lt=2**32)
    density: float = Field(ge=0, le=1)
    complexity: float = Field(ge=0, le=1)
    smoothness: float = Field(ge=0, le=1)
    layer_count: int = Field(ge=MIN_LAYERS, le=MAX_LAYERS)
    shape_vertex_count: int = Field(ge=MIN_VERTICES, le=MAX_VERTICES)
    palette_index: int = Field(ge=0, lt=PALETTE_COUNT)
    min_stroke_width: float = Field(default=0.5, gt=0)
    max_stroke_width: float = Field(default=1.5, gt=0)

    @property
    def stroke_width(self) -> float:
        return self.min_stroke_width + self.complexity * (self.max_stroke_width - self.min_stroke_width)

    @property
    def flows_per_layer(self) -> int:
        return math.floor(5 + self.density * 10)

    @property
    def noise_scale(self) -> float:
        return 0.005 / (self.smoothness + 0.1)


def derive_seed(metrics: ContentMetrics) -> int:
    raw = metrics.word_count * 137 + metrics.character_count * 31 + metrics.avg_word_length * 17
    return abs(math.floor(raw)) % 2**32


def clamp_vertices(paragraph_count: int) -> int:
    return min(max(paragraph_count, MIN_VERTICES), MAX_VERTICES)


def map_to_visual_parameters(metrics: ContentMetrics, overrides: Optional[StyleOverrides] = None) -> VisualParameters:
    overrides = overrides or StyleOverrides()
    return VisualParameters(
        seed=derive_seed(metrics),
        density=min(metrics.word_count / 1000, 1.0),
        complexity=min(metrics.character_count / 5000, 1.0),
        smoothness=min(metrics.avg_word_length / 10, 1.0),
        layer_count=max(MIN_LAYERS, math.floor(min(metrics.reading_time_minutes, MAX_LAYERS))),
        shape_vertex_count=clamp_vertices(metrics.paragraph_count),
        palette_index=metrics.content_hash % PALETTE_COUNT,
        min_stroke_width=overrides.min_stroke_width,
        max_stroke_width=overrides.max_stroke_width,
    )
