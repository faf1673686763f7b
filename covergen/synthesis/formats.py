from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Tuple

import cv2
import numpy as np
from PIL import Image

from covergen.synthesis.errors import ContractViolation


class CropMode(str, Enum):
    DIRECT = "direct"
    RESIZE = "resize"


@dataclass(frozen=True)
class OutputFormat:
    name: str
    width: int
    height: int


LANDSCAPE = OutputFormat("landscape", 1200, 628)
SQUARE = OutputFormat("square", 1200, 1200)
DEFAULT_FORMATS: Tuple[OutputFormat, ...] = (LANDSCAPE, SQUARE)
FORMATS: Dict[str, OutputFormat] = {fmt.name: fmt for fmt in DEFAULT_FORMATS}


def direct_crop(master: Image.Image, fmt: OutputFormat) -> Image.Image:
    mw, mh = master.size
    if fmt.width > mw or fmt.height > mh:
        raise ContractViolation(
            f"Format {fmt.name} ({fmt.width}x{fmt.height}) exceeds master {mw}x{mh} in direct mode"
        )
    return master.crop((0, 0, fmt.width, fmt.height))


def cover_crop(master: Image.Image, fmt: OutputFormat) -> Image.Image:
    """Scale to cover the target rectangle, then cut out its centre."""
    mw, mh = master.size
    scale = max(fmt.width / mw, fmt.height / mh)
    sw = max(fmt.width, int(round(mw * scale)))
    sh = max(fmt.height, int(round(mh * scale)))
    arr = np.array(master)
    if (sw, sh) != (mw, mh):
        interpolation = cv2.INTER_AREA if scale < 1 else cv2.INTER_LINEAR
        arr = cv2.resize(arr, (sw, sh), interpolation=interpolation)
    left = (sw - fmt.width) // 2
    top = (sh - fmt.height) // 2
    cropped = np.ascontiguousarray(arr[top : top + fmt.height, left : left + fmt.width])
    return Image.fromarray(cropped)


def derive_formats(
    master: Image.Image,
    formats: Iterable[OutputFormat] = DEFAULT_FORMATS,
    crop_mode: str = CropMode.DIRECT,
) -> Dict[str, Image.Image]:
    try:
        mode = CropMode(crop_mode)
    except ValueError:
        raise ContractViolation(f"Unknown crop mode: {crop_mode!r}") from None
    crop = direct_crop if mode is CropMode.DIRECT else cover_crop
    derived: Dict[str, Image.Image] = {}
    for fmt in formats:
        if fmt.width <= 0 or fmt.height <= 0:
            raise ContractViolation(f"Format {fmt.name} has non-positive size {fmt.width}x{fmt.height}")
        derived[fmt.name] = crop(master, fmt)
    return derived
