"""ContextCollector protocol and the default stack-walking collector.

Hosts can plug in their own collector (for example one that adds web
request data) without inheriting from any base class; any object with a
conformant ``collect`` method passes ``isinstance`` checks.

Example::

    from pretty_inspect.context import ContextCollector, ContextSnapshot

    class StaticCollector:
        def collect(self, request):
            return ContextSnapshot(origin={"file": "app.py", "line": 1})

    assert isinstance(StaticCollector(), ContextCollector)
"""

from __future__ import annotations

import inspect
import logging
import sys
from pathlib import Path
from types import FrameType
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from pretty_inspect.context.snapshot import ContextFrame, ContextSnapshot

if TYPE_CHECKING:
    from pretty_inspect.request import RenderRequest

__all__ = ["ContextCollector", "DefaultContextCollector", "frame_arguments", "is_internal_file"]

logger = logging.getLogger(__name__)

_PACKAGE_ROOT = str(Path(__file__).resolve().parent.parent)


@runtime_checkable
class ContextCollector(Protocol):
    """Structural protocol for context collectors.

    ``collect`` receives the render request being processed and returns a
    snapshot of the call-site. It is only invoked when context display is
    enabled and the request does not already carry a snapshot.
    """

    def collect(self, request: RenderRequest) -> ContextSnapshot: ...


class DefaultContextCollector:
    """Collect origin and stack from the live interpreter frames.

    Frames that belong to this package are skipped so the origin is the
    caller's own dump site.

    Args:
        max_frames:     Upper bound on recorded frames.
        capture_locals: When True, the origin frame's local variables are
            recorded as the snapshot ``variables``.
    """

    def __init__(self, max_frames: int = 100, capture_locals: bool = False) -> None:
        self._max_frames = max_frames
        self._capture_locals = capture_locals

    def collect(self, request: RenderRequest) -> ContextSnapshot:
        frames: list[ContextFrame] = []
        variables: dict[str, Any] = {}
        frame: FrameType | None = sys._getframe(1)
        while frame is not None and len(frames) < self._max_frames:
            if not is_internal_file(frame.f_code.co_filename):
                if not frames and self._capture_locals:
                    variables = dict(frame.f_locals)
                frames.append(_to_context_frame(frame))
            frame = frame.f_back

        if frames:
            head = frames[0]
            origin = {"file": head.file, "line": head.line, "function": head.function}
        else:
            origin = {"file": "unknown", "line": 0, "function": None}
        logger.debug("collected %d stack frames for %s dump", len(frames), request.channel)
        return ContextSnapshot(origin=origin, stack=tuple(frames), variables=variables)


def is_internal_file(filename: str) -> bool:
    return filename.startswith(_PACKAGE_ROOT)


def _to_context_frame(frame: FrameType) -> ContextFrame:
    code = frame.f_code
    function = None if code.co_name == "<module>" else code.co_qualname
    return ContextFrame(
        file=code.co_filename,
        line=frame.f_lineno,
        function=function,
        args=frame_arguments(frame),
    )


def frame_arguments(frame: FrameType) -> dict[str, Any]:
    """Return the call arguments of ``frame`` keyed by parameter name."""
    info = inspect.getargvalues(frame)
    names = list(info.args)
    if info.varargs:
        names.append(info.varargs)
    if info.keywords:
        names.append(info.keywords)
    return {name: info.locals[name] for name in names if name in info.locals}
