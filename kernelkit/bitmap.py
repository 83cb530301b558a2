"""Raw 24-bit pixel buffers that graphics contexts draw into."""

from __future__ import annotations

import enum
from typing import Optional

BYTES_PER_PIXEL = 3


class BitmapFormat(enum.IntEnum):
    RGB = 0
    RGBA = 1


class Bitmap:
    """A width x height buffer storing three bytes per pixel in blue, green, red order."""

    def __init__(
        self,
        width: int,
        height: int,
        format: BitmapFormat = BitmapFormat.RGB,
        data: Optional[bytearray] = None,
    ) -> None:
        if width < 0 or height < 0:
            raise ValueError("bitmap dimensions must not be negative")
        size = width * height * BYTES_PER_PIXEL
        if data is None:
            data = bytearray(size)
        elif len(data) != size:
            raise ValueError(f"bitmap data must be {size} bytes, got {len(data)}")
        self.width = width
        self.height = height
        self.format = BitmapFormat(format)
        self.data = data

    def __repr__(self) -> str:
        return f"Bitmap({self.width}x{self.height}, {self.format.name})"

    def pixel(self, x: int, y: int) -> tuple[int, int, int]:
        """Return the (red, green, blue) value at x, y."""
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"pixel ({x}, {y}) outside {self.width}x{self.height} bitmap")
        index = (self.width * y + x) * BYTES_PER_PIXEL
        blue, green, red = self.data[index:index + BYTES_PER_PIXEL]
        return red, green, blue