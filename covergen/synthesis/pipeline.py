from dataclasses import dataclass
from typing import Optional

from PIL import Image

from covergen.synthesis.metrics import ContentMetrics, analyze
from covergen.synthesis.parameters import StyleOverrides, VisualParameters, map_to_visual_parameters
from covergen.synthesis.renderer import render

MASTER_SIZE = 1200


@dataclass(frozen=True)
class GenerationResult:
    metrics: ContentMetrics
    parameters: VisualParameters
    master: Image.Image


def generate_master_image(
    text: str,
    overrides: Optional[StyleOverrides] = None,
    size: int = MASTER_SIZE,
    backend: str = "pillow",
) -> GenerationResult:
    metrics = analyze(text)
    parameters = map_to_visual_parameters(metrics, overrides)
    master = render(parameters, size, size, backend=backend)
    return GenerationResult(metrics=metrics, parameters=parameters, master=master)
