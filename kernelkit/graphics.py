"""Clipped drawing primitives over a Bitmap."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional, Sequence

from kernelkit.bitmap import BYTES_PER_PIXEL, Bitmap
from kernelkit.errors import InvalidRequestError, NotImplementedOperationError

FACTOR = 256
FONT_WIDTH = 8
FONT_HEIGHT = 8


@dataclass(frozen=True)
class Color:
    """An 8-bit colour; a non-zero alpha blends with what is already drawn."""

    r: int
    g: int
    b: int
    a: int = 0

    def __post_init__(self) -> None:
        for name in ("r", "g", "b", "a"):
            value = getattr(self, name)
            if not 0 <= value <= 255:
                raise ValueError(f"colour component {name}={value} outside 0..255")


WHITE = Color(255, 255, 255)
BLACK = Color(0, 0, 0)


@dataclass(frozen=True)
class Clip:
    """A drawing region in absolute bitmap coordinates."""

    x: int
    y: int
    w: int
    h: int


class GraphicsCommand(enum.IntEnum):
    FGCOLOR = 1
    BGCOLOR = 2
    RECT = 3
    CLEAR = 4
    LINE = 5
    TEXT = 6


def _plot(bitmap: Bitmap, x: int, y: int, c: Color) -> None:
    if not (0 <= x < bitmap.width and 0 <= y < bitmap.height):
        return
    i = (bitmap.width * y + x) * BYTES_PER_PIXEL
    v = bitmap.data
    if c.a == 0:
        v[i + 2] = c.r
        v[i + 1] = c.g
        v[i] = c.b
    else:
        keep = c.a
        take = 256 - keep
        v[i] = (c.r * take + v[i] * keep) >> 8
        v[i + 1] = (c.g * take + v[i + 1] * keep) >> 8
        v[i + 2] = (c.b * take + v[i + 2] * keep) >> 8


def _bits(data: bytes) -> Iterator[bool]:
    for byte in data:
        for k in range(8):
            yield bool((byte << k) & 0x80)


class Graphics:
    """A drawing context: a bitmap, foreground and background colours and a clip."""

    def __init__(self, bitmap: Bitmap) -> None:
        self.bitmap = bitmap
        self.fgcolor = WHITE
        self.bgcolor = BLACK
        self.clip = Clip(0, 0, bitmap.width, bitmap.height)
        self.parent: Optional[Graphics] = None
        self.font: Optional[bytes] = None

    @property
    def width(self) -> int:
        return self.clip.w

    @property
    def height(self) -> int:
        return self.clip.h

    def child(self) -> "Graphics":
        """Return a new context that starts as a copy of this one."""
        g = Graphics(self.bitmap)
        g.fgcolor = self.fgcolor
        g.bgcolor = self.bgcolor
        g.clip = self.clip
        g.font = self.font
        g.parent = self
        return g

    def set_clip(self, x: int, y: int, w: int, h: int) -> None:
        """Narrow the clip to a region given relative to the current one."""
        if x < 0 or y < 0 or w < 0 or h < 0:
            raise InvalidRequestError("clip values must not be negative")
        x += self.clip.x
        y += self.clip.y
        if x >= self.bitmap.width or y >= self.bitmap.height:
            raise InvalidRequestError("clip origin outside the bitmap")
        if x + w >= self.bitmap.width or y + h >= self.bitmap.height:
            raise InvalidRequestError("clip extends beyond the bitmap")
        self.clip = Clip(x, y, w, h)

    def _fill(self, x: int, y: int, w: int, h: int, color: Color) -> None:
        if x < 0:
            w += x
            x = 0
        if y < 0:
            h += y
            y = 0
        if x > self.clip.w or y > self.clip.h:
            return
        w = min(self.clip.w - x, w)
        h = min(self.clip.h - y, h)
        x += self.clip.x
        y += self.clip.y
        for j in range(h):
            for i in range(w):
                _plot(self.bitmap, x + i, y + j, color)

    def rect(self, x: int, y: int, w: int, h: int) -> None:
        """Fill a rectangle with the foreground colour."""
        self._fill(x, y, w, h, self.fgcolor)

    def clear(self, x: int, y: int, w: int, h: int) -> None:
        """Fill a rectangle with the background colour."""
        self._fill(x, y, w, h, self.bgcolor)

    def _walk(
        self,
        x: int,
        y: int,
        steps: int,
        slope: int,
        main: tuple[int, int],
        minor: tuple[int, int],
    ) -> None:
        counter = 0
        for _ in range(steps):
            _plot(self.bitmap, x, y, self.fgcolor)
            x += main[0]
            y += main[1]
            counter += slope
            if counter > FACTOR:
                counter -= FACTOR
                x += minor[0]
                y += minor[1]

    def line(self, x: int, y: int, w: int, h: int) -> None:
        """Draw a line from (x, y) spanning w by h; lines leaving the clip are skipped."""
        if w < 0:
            x += w
            y += h
            w = -w
            h = -h
        cw, ch = self.clip.w, self.clip.h
        if x < 0 or y < 0 or x > cw or y > ch:
            return
        if x + w >= cw or y + h >= ch or y + h < 0:
            return
        x += self.clip.x
        y += self.clip.y

        if h > 0:
            if w == 0:
                self._walk(x, y, h, 0, (0, 1), (0, 0))
            elif h > w:
                self._walk(x, y, h, FACTOR * w // h, (0, 1), (1, 0))
            else:
                self._walk(x, y, w, FACTOR * h // w, (1, 0), (0, 1))
        elif h < 0:
            if w == 0:
                self._walk(x, y + h, -h, 0, (0, 1), (0, 0))
            elif -h < w:
                self._walk(x, y, w, FACTOR * -h // w, (1, 0), (0, -1))
            else:
                self._walk(x, y, -h, FACTOR * w // -h, (0, -1), (1, 0))
        else:
            self._walk(x, y, max(w, 1), 0, (1, 0), (0, 0))

    def blit(self, x: int, y: int, width: int, height: int, data: bytes) -> None:
        """Draw a 1-bit image, most significant bit first, set bits in the foreground colour."""
        width = min(self.clip.w - x, width)
        height = min(self.clip.h - y, height)
        x += self.clip.x
        y += self.clip.y
        bits = _bits(data)
        for j in range(height):
            for i in range(width):
                bit = next(bits, None)
                if bit is None:
                    raise InvalidRequestError("bitmap data too short")
                _plot(self.bitmap, x + i, y + j, self.fgcolor if bit else self.bgcolor)

    def _char(self, x: int, y: int, code: int) -> None:
        if self.font is None:
            raise NotImplementedOperationError("no font loaded")
        start = (code & 0xFF) * FONT_WIDTH * FONT_HEIGHT // 8
        glyph = self.font[start:start + FONT_WIDTH * FONT_HEIGHT // 8]
        self.blit(x, y, FONT_WIDTH, FONT_HEIGHT, glyph)

    def scrollup(self, x: int, y: int, w: int, h: int, dy: int) -> None:
        """Move a region up by dy rows and clear the rows left behind."""
        w = min(self.clip.w - x, w)
        h = min(self.clip.h - y, h)
        x += self.clip.x
        y += self.clip.y
        dy = min(dy, h)
        data = self.bitmap.data
        bw = self.bitmap.width
        span = max(w, 0) * BYTES_PER_PIXEL
        for j in range(h - dy):
            dst = ((y + j) * bw + x) * BYTES_PER_PIXEL
            src = ((y + j + dy) * bw + x) * BYTES_PER_PIXEL
            chunk = bytes(data[src:src + span])
            data[dst:dst + len(chunk)] = chunk
        self.clear(x, y + h - dy, w, dy)

    def write(self, commands: Iterable[Sequence]) -> None:
        """Execute a stream of (GraphicsCommand, arguments...) tuples in order."""
        for command in commands:
            if not command:
                raise InvalidRequestError("empty graphics command")
            op, *args = command
            try:
                kind = GraphicsCommand(op)
            except ValueError:
                raise InvalidRequestError(f"unknown graphics command {op!r}") from None
            expected = 3 if kind in (GraphicsCommand.FGCOLOR, GraphicsCommand.BGCOLOR, GraphicsCommand.TEXT) else 4
            if len(args) != expected:
                raise InvalidRequestError(f"{kind.name} takes {expected} arguments")
            if kind is GraphicsCommand.FGCOLOR:
                self.fgcolor = Color(*(int(v) & 0xFF for v in args))
            elif kind is GraphicsCommand.BGCOLOR:
                self.bgcolor = Color(*(int(v) & 0xFF for v in args))
            elif kind is GraphicsCommand.RECT:
                self.rect(*args)
            elif kind is GraphicsCommand.CLEAR:
                self.clear(*args)
            elif kind is GraphicsCommand.LINE:
                self.line(*args)
            else:
                tx, ty, text = args
                codes = text if isinstance(text, (bytes, bytearray)) else [ord(c) for c in text]
                for i, code in enumerate(codes):
                    self._char(tx + i * FONT_WIDTH, ty, code)