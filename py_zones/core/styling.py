"""Deterministic zone colors."""

from typing import Optional

from ..config import settings


def _int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def label_hash(label: str) -> int:
    """
    Hash a label the way the editor front-end does.

    Runs over UTF-16 code units with ``h = (h << 5) - h + code``, where only
    the shift wraps to 32 bits. The result is unbounded, not an int32.
    """
    h = 0
    data = label.encode("utf-16-le")
    for i in range(0, len(data), 2):
        code = data[i] | (data[i + 1] << 8)
        h = code + (_int32(_int32(h) << 5) - h)
    return h


def zone_color(label: str, saturation: Optional[int] = None, lightness: Optional[int] = None) -> str:
    """Map a zone label to a CSS hsl() color. Same label, same color."""
    saturation = settings.color_saturation if saturation is None else saturation
    lightness = settings.color_lightness if lightness is None else lightness
    hue = abs(label_hash(label)) % 360
    return f"hsl({hue}, {saturation}%, {lightness}%)"
