"""Frame driver: runs a scene stack one ``update()`` per frame.

A headless stand-in for a render loop. Each tick advances a :class:`FrameClock`
by the configured interval, updates the stack, optionally snapshots it with
the codec, and hands the frame to a callback.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from storyframe.errors import InvalidOperationError, UnknownSingletonError
from storyframe.observability.logging import frame_context, get_logger
from storyframe.scenes.scene import Scene
from storyframe.scenes.stack import SceneStack
from storyframe.serde.codec import Document, encode
from storyframe.serde.registry import SingletonRegistry, default_registry

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

log = get_logger(__name__)


class FrameClock:
    """Monotonic frame time in milliseconds.

    Attributes:
        time: Timestamp of the latest frame.
        frame_time: Time elapsed between the two latest frames.
    """

    def __init__(self, start: float = 0.0) -> None:
        self.time = start
        self.frame_time = 0.0

    def advance(self, timestamp: float) -> float:
        """Move to ``timestamp`` and return the elapsed frame time.

        Raises:
            ValueError: If ``timestamp`` lies before the current time.
        """
        if timestamp < self.time:
            raise ValueError(f"Frame clock cannot go backwards ({timestamp} < {self.time})")
        self.frame_time = timestamp - self.time
        self.time = timestamp
        return self.frame_time


@dataclass
class RunSummary:
    """Outcome of :meth:`FrameDriver.run`.

    Attributes:
        frames: Number of frames driven.
        completed: True if the stack ran empty before the frame limit.
        documents: Per-frame encoded stack snapshots (only when tracing).
    """

    frames: int = 0
    completed: bool = False
    documents: list[Document] = field(default_factory=list)


class FrameDriver:
    """Drives a :class:`SceneStack` with a simulated fixed-rate clock."""

    def __init__(
        self,
        stack: SceneStack,
        *,
        clock: FrameClock | None = None,
        max_frames: int = 1000,
        frame_interval_ms: float = 16.0,
        on_frame: Callable[[int, SceneStack], None] | None = None,
        trace_documents: bool = False,
        registry: SingletonRegistry | None = None,
    ) -> None:
        if max_frames < 1:
            raise ValueError(f"max_frames must be at least 1, got {max_frames}")
        self.stack = stack
        self.clock = clock if clock is not None else FrameClock()
        self.max_frames = max_frames
        self.frame_interval_ms = frame_interval_ms
        self.on_frame = on_frame
        self.trace_documents = trace_documents
        self.registry = registry if registry is not None else default_registry
        self.frame = 0
        self.documents: list[Document] = []

    def tick(self) -> None:
        """Run a single frame."""
        self.clock.advance(self.clock.time + self.frame_interval_ms)
        top = self.stack.top
        with frame_context(self.frame, type(top).__name__ if top is not None else None):
            self.stack.update()
            if self.trace_documents:
                self.documents.append(encode(self.stack, registry=self.registry))
        if self.on_frame is not None:
            self.on_frame(self.frame, self.stack)
        self.frame += 1

    def run(self) -> RunSummary:
        """Tick until the stack is empty or ``max_frames`` is reached."""
        while self.frame < self.max_frames:
            self.tick()
            if not self.stack.scenes:
                log.info("run_completed", frames=self.frame)
                return RunSummary(frames=self.frame, completed=True, documents=self.documents)

        log.warning(
            "frame_limit_reached",
            frames=self.frame,
            remaining_scenes=[type(scene).__name__ for scene in self.stack.scenes],
        )
        return RunSummary(frames=self.frame, completed=False, documents=self.documents)


def resolve_scene_class(name: str, registry: SingletonRegistry | None = None) -> type[Scene]:
    """Look up a registered scene class by name.

    Raises:
        UnknownSingletonError: If nothing is registered under ``name``.
        InvalidOperationError: If ``name`` is registered but not a Scene subclass.
    """
    registry = registry if registry is not None else default_registry
    if not registry.has_name(name):
        raise UnknownSingletonError(name, registry.names())
    value: Any = registry.lookup_by_name(name)
    if not (isinstance(value, type) and issubclass(value, Scene)):
        raise InvalidOperationError(f"Singleton {name!r} is not a scene class: {value!r}")
    return value


def build_stack(
    scene_names: Sequence[str],
    registry: SingletonRegistry | None = None,
) -> SceneStack:
    """Create a stack with the named scenes queued for the first frame."""
    scene_classes = [resolve_scene_class(name, registry) for name in scene_names]
    stack = SceneStack()
    stack.push(*scene_classes)
    log.debug("stack_built", scenes=list(scene_names))
    return stack


__all__ = [
    "FrameClock",
    "FrameDriver",
    "RunSummary",
    "build_stack",
    "resolve_scene_class",
]
