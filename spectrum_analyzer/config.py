"""Central configuration for the streaming spectrum analyzer."""

import shutil
from dataclasses import dataclass, field
from typing import Optional, Tuple

# Accumulation settings
BUFFER_SIZE: int = 1024
NUM_BUFFERS: int = 8
SHORT_CHUNK_POLICY: str = "discard"
SHORT_CHUNK_POLICIES: Tuple[str, ...] = ("discard", "copy")

# Inter-thread transport settings
QUEUE_MAXSIZE: int = 64
OVERFLOW_POLICY: str = "drop-oldest"
OVERFLOW_POLICIES: Tuple[str, ...] = ("drop-oldest", "drop-newest")

# Output settings
OUTPUT_MODE: str = "peak"
OUTPUT_MODES: Tuple[str, ...] = ("peak", "spectrum")
FIXED_WIDTH: int = 100
FIXED_HEIGHT: int = 40
VERTICAL_SCALE: float = 10.0
MAX_DISPLAY_HZ: Optional[float] = None
FILL_CHAR: str = "#"
LOG_LEVEL: str = "WARNING"


@dataclass(frozen=True)
class RenderMode:
    """Bar chart size: live terminal dimensions or a fixed width x height."""

    adaptive: bool = True
    width: int = FIXED_WIDTH
    height: int = FIXED_HEIGHT

    @classmethod
    def fixed(cls, width: int = FIXED_WIDTH, height: int = FIXED_HEIGHT) -> "RenderMode":
        """Always render at ``width`` x ``height`` cells."""
        if width < 1 or height < 1:
            raise ValueError(f"render size must be positive, got {width}x{height}")
        return cls(adaptive=False, width=width, height=height)

    @classmethod
    def from_terminal(cls) -> "RenderMode":
        """Follow the live terminal size on every frame."""
        return cls(adaptive=True)

    def size(self) -> Tuple[int, int]:
        """Return ``(width, height)`` in character cells."""
        if not self.adaptive:
            return self.width, self.height
        columns, lines = shutil.get_terminal_size((self.width, self.height))
        # keep the last line free so the cursor does not scroll the frame
        return max(1, columns), max(1, lines - 1)


@dataclass(frozen=True)
class AnalyzerSettings:
    """Session parameters handed to the accumulator, transform and display."""

    buffer_size: int = BUFFER_SIZE
    num_buffers: int = NUM_BUFFERS
    short_chunk_policy: str = SHORT_CHUNK_POLICY
    queue_maxsize: int = QUEUE_MAXSIZE
    overflow_policy: str = OVERFLOW_POLICY
    output_mode: str = OUTPUT_MODE
    render_mode: RenderMode = field(default_factory=RenderMode)
    vertical_scale: float = VERTICAL_SCALE
    max_display_hz: Optional[float] = MAX_DISPLAY_HZ

    def __post_init__(self) -> None:
        if self.buffer_size < 1 or self.num_buffers < 1:
            raise ValueError("buffer_size and num_buffers must be at least 1")
        if self.total_length < 2:
            raise ValueError("buffer_size * num_buffers must be at least 2")
        if self.short_chunk_policy not in SHORT_CHUNK_POLICIES:
            raise ValueError(f"Unknown short chunk policy: {self.short_chunk_policy!r}")
        if self.overflow_policy not in OVERFLOW_POLICIES:
            raise ValueError(f"Unknown overflow policy: {self.overflow_policy!r}")
        if self.output_mode not in OUTPUT_MODES:
            raise ValueError(f"Unknown output mode: {self.output_mode!r}")
        if self.queue_maxsize < 0:
            raise ValueError("queue_maxsize must be >= 0 (0 means unbounded)")
        if self.vertical_scale <= 0:
            raise ValueError("vertical_scale must be positive")

    @property
    def total_length(self) -> int:
        """Length of the full transform window in samples."""
        return self.buffer_size * self.num_buffers
