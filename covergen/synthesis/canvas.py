"""Raster backends for the renderer.

The renderer only talks to :class:`Canvas`. Two backends exist: an
``ImageDraw`` backed one and an OpenCV one drawing into a numpy buffer with
anti-aliased edges. Output within one backend is deterministic; the two
backends do not agree pixel for pixel.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Sequence, Tuple, Type

import cv2
import numpy as np
from PIL import Image, ImageDraw

from covergen.synthesis.errors import ContractViolation

RGB = Tuple[int, int, int]
Point = Tuple[float, float]

CV_SHIFT = 4
CV_SCALE = 1 << CV_SHIFT


def stroke_style(width: float) -> Tuple[int, int]:
    """Pixel width and alpha for a possibly sub-pixel stroke width."""
    width_px = max(1, int(round(width)))
    alpha = 255 if width >= 1 else max(1, int(round(255 * width)))
    return width_px, alpha


def gradient_pixels(top: RGB, bottom: RGB, width: int, height: int) -> np.ndarray:
    t = (np.arange(height, dtype=np.float64) + 0.5) / height
    start = np.array(top, dtype=np.float64)
    end = np.array(bottom, dtype=np.float64)
    rows = np.rint(start[None, :] + (end - start)[None, :] * t[:, None])
    arr = np.empty((height, width, 4), dtype=np.uint8)
    arr[:, :, :3] = np.clip(rows, 0, 255).astype(np.uint8)[:, None, :]
    arr[:, :, 3] = 255
    return arr


class Canvas(ABC):
    def __init__(self, width: int, height: int) -> None:
        if width <= 0 or height <= 0:
            raise ContractViolation(f"Canvas dimensions must be positive, got {width}x{height}")
        self.width = width
        self.height = height

    def fill_gradient(self, top: RGB, bottom: RGB) -> None:
        self.write_pixels(gradient_pixels(top, bottom, self.width, self.height))

    def _check_shape(self, pixels: np.ndarray) -> None:
        if pixels.shape != (self.height, self.width, 4):
            raise ContractViolation(
                f"Pixel buffer shape {pixels.shape} does not match canvas {self.width}x{self.height}"
            )

    @abstractmethod
    def fill_polygon(self, points: Sequence[Point], color: RGB) -> None: ...

    @abstractmethod
    def fill_circle(self, cx: float, cy: float, radius: float, color: RGB) -> None: ...

    @abstractmethod
    def stroke_polyline(self, points: Sequence[Point], color: RGB, width: float) -> None: ...

    @abstractmethod
    def read_pixels(self) -> np.ndarray: ...

    @abstractmethod
    def write_pixels(self, pixels: np.ndarray) -> None: ...

    @abstractmethod
    def to_image(self) -> Image.Image: ...


class PillowCanvas(Canvas):
    def __init__(self, width: int, height: int) -> None:
        super().__init__(width, height)
        self.image = Image.new("RGBA", (width, height), (0, 0, 0, 255))
        self._draw = ImageDraw.Draw(self.image)

    def fill_polygon(self, points: Sequence[Point], color: RGB) -> None:
        self._draw.polygon(list(points), fill=tuple(color) + (255,))

    def fill_circle(self, cx: float, cy: float, radius: float, color: RGB) -> None:
        bbox = [cx - radius, cy - radius, cx + radius, cy + radius]
        self._draw.ellipse(bbox, fill=tuple(color) + (255,))

    def stroke_polyline(self, points: Sequence[Point], color: RGB, width: float) -> None:
        width_px, alpha = stroke_style(width)
        fill = tuple(color) + (255,)
        if alpha == 255:
            self._draw.line(list(points), fill=fill, width=width_px, joint="curve")
            return
        # ImageDraw overwrites RGBA pixels, so translucent strokes are blended in
        overlay = self.image.copy()
        ImageDraw.Draw(overlay).line(list(points), fill=fill, width=width_px, joint="curve")
        self.image = Image.blend(self.image, overlay, alpha / 255.0)
        self._draw = ImageDraw.Draw(self.image)

    def read_pixels(self) -> np.ndarray:
        return np.array(self.image, dtype=np.uint8)

    def write_pixels(self, pixels: np.ndarray) -> None:
        self._check_shape(pixels)
        self.image = Image.fromarray(np.ascontiguousarray(pixels, dtype=np.uint8))
        self._draw = ImageDraw.Draw(self.image)

    def to_image(self) -> Image.Image:
        return self.image.copy()


def _cv_points(points: Sequence[Point]) -> np.ndarray:
    pts = np.rint(np.asarray(points, dtype=np.float64) * CV_SCALE).astype(np.int32)
    return pts.reshape((-1, 1, 2))


class OpenCVCanvas(Canvas):
    def __init__(self, width: int, height: int) -> None:
        super().__init__(width, height)
        self.buffer = np.zeros((height, width, 4), dtype=np.uint8)
        self.buffer[:, :, 3] = 255

    def fill_polygon(self, points: Sequence[Point], color: RGB) -> None:
        cv2.fillPoly(self.buffer, [_cv_points(points)], tuple(color) + (255,), lineType=cv2.LINE_AA, shift=CV_SHIFT)

    def fill_circle(self, cx: float, cy: float, radius: float, color: RGB) -> None:
        center = (int(round(cx * CV_SCALE)), int(round(cy * CV_SCALE)))
        cv2.circle(
            self.buffer,
            center,
            int(round(radius * CV_SCALE)),
            tuple(color) + (255,),
            thickness=-1,
            lineType=cv2.LINE_AA,
            shift=CV_SHIFT,
        )

    def stroke_polyline(self, points: Sequence[Point], color: RGB, width: float) -> None:
        width_px, alpha = stroke_style(width)
        pts = [_cv_points(points)]
        if alpha == 255:
            cv2.polylines(self.buffer, pts, False, tuple(color) + (255,), width_px, cv2.LINE_AA, CV_SHIFT)
            return
        overlay = self.buffer.copy()
        cv2.polylines(overlay, pts, False, tuple(color) + (255,), width_px, cv2.LINE_AA, CV_SHIFT)
        weight = alpha / 255.0
        self.buffer = cv2.addWeighted(overlay, weight, self.buffer, 1.0 - weight, 0)

    def read_pixels(self) -> np.ndarray:
        return self.buffer.copy()

    def write_pixels(self, pixels: np.ndarray) -> None:
        self._check_shape(pixels)
        self.buffer = np.ascontiguousarray(pixels, dtype=np.uint8).copy()

    def to_image(self) -> Image.Image:
        return Image.fromarray(self.buffer.copy())


BACKENDS: Dict[str, Type[Canvas]] = {
    "pillow": PillowCanvas,
    "opencv": OpenCVCanvas,
}


def available_backends() -> List[str]:
    return sorted(BACKENDS)


def create_canvas(backend: str, width: int, height: int) -> Canvas:
    try:
        cls = BACKENDS[backend]
    except KeyError:
        raise ContractViolation(f"Unknown backend: {backend!r}. Choose from {available_backends()}") from None
    return cls(width, height)
