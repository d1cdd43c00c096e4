from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union


BATCH_SIZE = 50
PALETTE_SIZE = 26
MIN_BRUSH = 4
MAX_BRUSH = 40
TOOLS = ("brush", "eraser")


@dataclass(frozen=True)
class Stroke:
    tool: str
    color: int
    size: int
    x1: float
    y1: float
    x2: float
    y2: float

    def to_dict(self) -> dict:
        return {
            "type": "stroke",
            "tool": self.tool,
            "color": self.color,
            "size": self.size,
            "x1": self.x1,
            "y1": self.y1,
            "x2": self.x2,
            "y2": self.y2,
        }


@dataclass(frozen=True)
class Fill:
    color: int
    x: float
    y: float

    def to_dict(self) -> dict:
        return {"type": "fill", "color": self.color, "x": self.x, "y": self.y}


StrokeCommand = Union[Stroke, Fill]


def _number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if value != value:  # NaN
        return None
    return value


def _in_range(value: float | None, low: float, high: float) -> bool:
    return value is not None and low <= value <= high


def parse_command(raw: Any, width: int, height: int) -> StrokeCommand | None:
    """Build a command from its wire form, or None when it falls outside the canvas."""
    if not isinstance(raw, dict):
        return None
    kind = raw.get("type")
    color = raw.get("color")
    if isinstance(color, bool) or not isinstance(color, int) or not 0 <= color < PALETTE_SIZE:
        return None

    if kind == "fill":
        x, y = _number(raw.get("x")), _number(raw.get("y"))
        if not (_in_range(x, 0, width) and _in_range(y, 0, height)):
            return None
        return Fill(color=color, x=x, y=y)

    if kind == "stroke":
        tool = raw.get("tool", "brush")
        size = raw.get("size")
        if tool not in TOOLS:
            return None
        if isinstance(size, bool) or not isinstance(size, int) or not MIN_BRUSH <= size <= MAX_BRUSH:
            return None
        xs = [_number(raw.get(k)) for k in ("x1", "x2")]
        ys = [_number(raw.get(k)) for k in ("y1", "y2")]
        if not all(_in_range(x, 0, width) for x in xs):
            return None
        if not all(_in_range(y, 0, height) for y in ys):
            return None
        return Stroke(tool=tool, color=color, size=size, x1=xs[0], y1=ys[0], x2=xs[1], y2=ys[1])

    return None


class StrokeBuffer:
    """Ordered drawing log for the current round.

    Commands are relayed in batches of at most ``BATCH_SIZE``; every batch
    boundary is an undo checkpoint. Only the flushed prefix of the log is
    replayed to late joiners, the rest reaches them with the next batch.
    """

    def __init__(self, width: int = 800, height: int = 600) -> None:
        self.width = width
        self.height = height
        self._log: list[StrokeCommand] = []
        self._flushed = 0
        self._checkpoints: list[int] = []

    def __len__(self) -> int:
        return len(self._log)

    @property
    def flushed(self) -> int:
        return self._flushed

    @property
    def checkpoints(self) -> list[int]:
        return list(self._checkpoints)

    def has_pending(self) -> bool:
        return len(self._log) > self._flushed

    def append(self, raw: Any) -> bool:
        command = raw if isinstance(raw, (Stroke, Fill)) else parse_command(raw, self.width, self.height)
        if command is None:
            return False
        self._log.append(command)
        return True

    def take_batch(self) -> list[StrokeCommand]:
        if not self.has_pending():
            return []
        end = min(len(self._log), self._flushed + BATCH_SIZE)
        batch = self._log[self._flushed:end]
        self._flushed = end
        self._checkpoints.append(end)
        return batch

    def undo(self) -> int | None:
        """Truncate to the previous checkpoint; None means the canvas was cleared."""
        if not self.has_pending() and self._checkpoints:
            self._checkpoints.pop()
        target = self._checkpoints[-1] if self._checkpoints else 0
        if target <= 0:
            self.clear()
            return None
        del self._log[target:]
        self._flushed = target
        return target

    def clear(self) -> None:
        self._log.clear()
        self._flushed = 0
        self._checkpoints.clear()

    def replay(self) -> list[dict]:
        return [c.to_dict() for c in self._log[:self._flushed]]
