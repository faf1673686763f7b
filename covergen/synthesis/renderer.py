import math
from dataclasses import dataclass
from enum import Enum
from typing import List, Sequence, Tuple

import numpy as np
from PIL import Image

from covergen.synthesis.canvas import RGB, Canvas, Point, create_canvas
from covergen.synthesis.errors import ContractViolation
from covergen.synthesis.noise import PerlinNoise
from covergen.synthesis.palettes import palette_at
from covergen.synthesis.parameters import VisualParameters
from covergen.synthesis.prng import SeededRandom

CURVES_PER_LAYER = 3
CURVE_STEPS = 50
TEXTURE_STRIDE = 2
TEXTURE_SCALE = 0.01
TEXTURE_AMPLITUDE = 10


class ShapeKind(Enum):
    CIRCLE = "circle"
    STAR = "star"
    RECTANGLE = "rectangle"
    POLYGON = "polygon"
    BLOB = "blob"


@dataclass(frozen=True)
class Flow:
    layer: int
    index: int
    x: float
    y: float
    size: float
    offset: int
    kind: ShapeKind
    color: RGB


def shape_selector(offset: int, smoothness: float) -> float:
    return (offset * 37 + smoothness * 100) % 100


def select_shape(offset: int, smoothness: float) -> ShapeKind:
    selector = shape_selector(offset, smoothness)
    if selector < 20:
        return ShapeKind.CIRCLE
    if selector < 35:
        return ShapeKind.STAR
    if selector < 50:
        return ShapeKind.RECTANGLE
    if selector < 70:
        return ShapeKind.POLYGON
    return ShapeKind.BLOB


def rotate_points(points: List[Point], angle_rad: float) -> List[Point]:
    ca, sa = math.cos(angle_rad), math.sin(angle_rad)
    return [(x * ca - y * sa, x * sa + y * ca) for (x, y) in points]


def translate_points(points: List[Point], dx: float, dy: float) -> List[Point]:
    return [(x + dx, y + dy) for (x, y) in points]


def star_points(x: float, y: float, radius: float, vertices: int) -> List[Point]:
    step = 2 * math.pi / vertices
    half = step / 2
    inner = radius * 0.5
    pts: List[Point] = []
    for i in range(vertices):
        a = -math.pi / 2 + i * step
        pts.append((x + math.cos(a) * radius, y + math.sin(a) * radius))
        pts.append((x + math.cos(a + half) * inner, y + math.sin(a + half) * inner))
    return pts


def rectangle_points(x: float, y: float, size: float, offset: int) -> List[Point]:
    w = size * (0.8 + (offset % 10) / 20)
    h = size * (0.8 + ((offset * 3) % 10) / 20)
    corners = [(-w / 2, -h / 2), (w / 2, -h / 2), (w / 2, h / 2), (-w / 2, h / 2)]
    return translate_points(rotate_points(corners, offset * 0.1), x, y)


def polygon_points(x: float, y: float, radius: float, vertices: int) -> List[Point]:
    step = 2 * math.pi / vertices
    return [(x + math.cos(i * step) * radius, y + math.sin(i * step) * radius) for i in range(vertices)]


def blob_points(
    x: float,
    y: float,
    radius: float,
    vertices: int,
    noise_scale: float,
    offset: int,
    noise: PerlinNoise,
) -> List[Point]:
    step = 2 * math.pi / vertices
    pts: List[Point] = []
    for i in range(vertices):
        a = i * step
        x_off = math.cos(a) * noise_scale + offset
        y_off = math.sin(a) * noise_scale + offset
        r = radius * (0.7 + noise.sample(x_off, y_off) * 0.6)
        pts.append((x + math.cos(a) * r, y + math.sin(a) * r))
    return pts


def curve_points(noise: PerlinNoise, width: int, height: int, noise_scale: float, offset: int) -> List[Point]:
    # five depth bands: 0.1, 0.2, ... 0.5 of the height
    base_depth = ((offset % 5) / 5) * 0.5 + 0.1
    pts: List[Point] = []
    for i in range(CURVE_STEPS + 1):
        t = i / CURVE_STEPS
        value = noise.sample(t * 5 + offset, offset * noise_scale)
        pts.append((t * width, height * base_depth * value))
    return pts


def plan_layer(
    layer: int,
    params: VisualParameters,
    accents: Sequence[RGB],
    width: int,
    height: int,
    rng: SeededRandom,
) -> List[Flow]:
    flows: List[Flow] = []
    for index in range(params.flows_per_layer):
        x = rng.next() * width
        y = rng.next() * height
        size = 50 + rng.next() * (150 * params.complexity)
        offset = index + layer * 100
        flows.append(
            Flow(
                layer=layer,
                index=index,
                x=x,
                y=y,
                size=size,
                offset=offset,
                kind=select_shape(offset, params.smoothness),
                color=accents[index % len(accents)],
            )
        )
    return flows


def draw_flow(canvas: Canvas, flow: Flow, params: VisualParameters, noise: PerlinNoise) -> None:
    vertices = params.shape_vertex_count
    if flow.kind is ShapeKind.CIRCLE:
        canvas.fill_circle(flow.x, flow.y, flow.size, flow.color)
    elif flow.kind is ShapeKind.STAR:
        canvas.fill_polygon(star_points(flow.x, flow.y, flow.size, vertices), flow.color)
    elif flow.kind is ShapeKind.RECTANGLE:
        canvas.fill_polygon(rectangle_points(flow.x, flow.y, flow.size, flow.offset), flow.color)
    elif flow.kind is ShapeKind.POLYGON:
        canvas.fill_polygon(polygon_points(flow.x, flow.y, flow.size, vertices), flow.color)
    else:
        pts = blob_points(flow.x, flow.y, flow.size, vertices, params.noise_scale, flow.offset, noise)
        canvas.fill_polygon(pts, flow.color)


def draw_layers(
    canvas: Canvas,
    params: VisualParameters,
    accents: Sequence[RGB],
    rng: SeededRandom,
    noise: PerlinNoise,
) -> None:
    for layer in range(params.layer_count):
        for flow in plan_layer(layer, params, accents, canvas.width, canvas.height, rng):
            draw_flow(canvas, flow, params, noise)
        for i in range(CURVES_PER_LAYER):
            pts = curve_points(noise, canvas.width, canvas.height, params.noise_scale, i + layer * 10)
            canvas.stroke_polyline(pts, accents[i % len(accents)], params.stroke_width)


def apply_noise_texture(canvas: Canvas, noise: PerlinNoise) -> None:
    pixels = canvas.read_pixels()
    xs = np.arange(0, canvas.width, TEXTURE_STRIDE)
    ys = np.arange(0, canvas.height, TEXTURE_STRIDE)
    values = noise.sample_grid(xs[None, :] * TEXTURE_SCALE, ys[:, None] * TEXTURE_SCALE) * TEXTURE_AMPLITUDE
    block = pixels[::TEXTURE_STRIDE, ::TEXTURE_STRIDE, :3].astype(np.float64)
    block = block + values[:, :, None] - TEXTURE_AMPLITUDE / 2
    pixels[::TEXTURE_STRIDE, ::TEXTURE_STRIDE, :3] = np.rint(np.clip(block, 0, 255)).astype(np.uint8)
    canvas.write_pixels(pixels)


def render(params: VisualParameters, width: int, height: int, backend: str = "pillow") -> Image.Image:
    if width <= 0 or height <= 0:
        raise ContractViolation(f"Render dimensions must be positive, got {width}x{height}")
    palette = palette_at(params.palette_index)
    accents = palette.accents_rgb()
    rng = SeededRandom(params.seed)
    noise = PerlinNoise(params.seed)

    canvas = create_canvas(backend, width, height)
    canvas.fill_gradient(*palette.gradient_stops())
    draw_layers(canvas, params, accents, rng, noise)
    apply_noise_texture(canvas, noise)
    return canvas.to_image()
