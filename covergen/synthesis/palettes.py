from dataclasses import dataclass
from typing import List, Tuple

from PIL import ImageColor

from covergen.synthesis.errors import ContractViolation

RGB = Tuple[int, int, int]


@dataclass(frozen=True)
class Palette:
    name: str
    background: Tuple[str, ...]
    accents: Tuple[str, str, str]

    def background_rgb(self) -> List[RGB]:
        return [ImageColor.getrgb(c) for c in self.background]

    def accents_rgb(self) -> List[RGB]:
        return [ImageColor.getrgb(c) for c in self.accents]

    def gradient_stops(self) -> Tuple[RGB, RGB]:
        colors = self.background_rgb()
        return colors[0], colors[1] if len(colors) > 1 else colors[0]


PALETTES: Tuple[Palette, ...] = (
    Palette("sunset warmth", ("#FF6B6B", "#FFE66D"), ("#4ECDC4", "#FF6B9D", "#C44569")),
    Palette("ocean depths", ("#667eea", "#764ba2"), ("#f093fb", "#4facfe", "#43e97b")),
    Palette("forest serenity", ("#134E5E", "#71B280"), ("#A8E6CF", "#DCEDC1", "#FFD3B6")),
    Palette("purple dream", ("#A770EF", "#CF8BF3"), ("#FDB99B", "#E8D5B7", "#B8E1DD")),
    Palette("cosmic night", ("#0F2027", "#203A43", "#2C5364"), ("#F857A6", "#FF5858", "#FFC371")),
    Palette("peachy keen", ("#FFA07A", "#FF6B9D"), ("#C44569", "#8B4367", "#1F4068")),
    Palette("mint fresh", ("#56CCF2", "#2F80ED"), ("#6FCF97", "#F2C94C", "#EB5757")),
    Palette("lavender fields", ("#D4A5A5", "#9A86A4"), ("#6C9A8B", "#E9B384", "#F4F2DE")),
    Palette("coral reef", ("#FF9A8B", "#FF6A88"), ("#FF99AC", "#FFEAA7", "#74B9FF")),
    Palette("northern lights", ("#00B4DB", "#0083B0"), ("#74EBD5", "#ACB6E5", "#86A8E7")),
)


def palette_at(index: int) -> Palette:
    if not 0 <= index < len(PALETTES):
        raise ContractViolation(f"Palette index out of range: {index}")
    return PALETTES[index]
