"""Frame and operator-input plumbing shared by the portal server and the login loop.

The uvicorn thread only ever touches these objects; the Playwright page is
driven exclusively from the login's event loop.
"""

from __future__ import annotations

import io
import logging
import threading
from collections import deque
from datetime import datetime
from typing import Any

from PIL import Image

logger = logging.getLogger(__name__)

DEFAULT_STREAM_FPS = 4
DEFAULT_STREAM_QUALITY = 70
INPUT_ACTIONS = frozenset({"click", "type", "press"})


def compress_frame_to_jpeg(frame: bytes | Image.Image, quality: int = DEFAULT_STREAM_QUALITY) -> bytes:
    """Compress a frame (raw PNG/JPEG bytes or PIL Image) to JPEG.

    Args:
        frame: Raw image bytes or PIL Image.
        quality: JPEG quality 1-100.

    Returns:
        JPEG-encoded bytes.
    """
    quality = max(1, min(100, quality))
    if isinstance(frame, Image.Image):
        img = frame.convert("RGB")
    else:
        img = Image.open(io.BytesIO(frame)).convert("RGB")
    buf = io.BytesIO()
    img.save(buf, format="JPEG", quality=quality, optimize=False)
    return buf.getvalue()


class ScreenStreamingService:
    """Holds the latest page frame as JPEG. Thread-safe."""

    def __init__(
        self,
        stream_fps: int = DEFAULT_STREAM_FPS,
        stream_quality: int = DEFAULT_STREAM_QUALITY,
    ) -> None:
        self._stream_fps = max(1, min(30, stream_fps))
        self._stream_quality = max(1, min(100, stream_quality))
        self._lock = threading.Lock()
        self._latest_jpeg: bytes | None = None

    @property
    def stream_fps(self) -> int:
        return self._stream_fps

    def push_frame(self, frame: bytes | Image.Image) -> None:
        jpeg = compress_frame_to_jpeg(frame, self._stream_quality)
        with self._lock:
            self._latest_jpeg = jpeg

    def get_latest_frame(self) -> bytes | None:
        with self._lock:
            return self._latest_jpeg


class PortalChannel:
    """One operator channel: a frame stream, a queue of input commands, a resolved flag."""

    def __init__(
        self,
        token: str,
        identity: str | None = None,
        stream_fps: int = DEFAULT_STREAM_FPS,
        stream_quality: int = DEFAULT_STREAM_QUALITY,
        max_commands: int = 500,
    ) -> None:
        self.token = token
        self.identity = identity
        self.screen = ScreenStreamingService(stream_fps=stream_fps, stream_quality=stream_quality)
        self._lock = threading.Lock()
        self._commands: deque[dict[str, Any]] = deque(maxlen=max(1, max_commands))
        self._next_command_id = 1
        self._resolved = threading.Event()

    def push_command(self, action: str, payload: dict[str, Any] | None = None) -> int:
        """Queue an operator input command and return its id.

        Raises:
            ValueError: If ``action`` is not a supported input action.
        """
        if action not in INPUT_ACTIONS:
            raise ValueError(f"Unsupported portal action: {action}")
        with self._lock:
            command_id = self._next_command_id
            self._next_command_id += 1
            self._commands.append(
                {
                    "id": command_id,
                    "timestamp": datetime.now().isoformat(),
                    "action": action,
                    "payload": payload or {},
                }
            )
            return command_id

    def pop_commands(self) -> list[dict[str, Any]]:
        """Pop all queued commands in FIFO order."""
        with self._lock:
            popped = list(self._commands)
            self._commands.clear()
            return popped

    def mark_resolved(self) -> None:
        self._resolved.set()

    @property
    def resolved(self) -> bool:
        return self._resolved.is_set()


class PortalRegistry:
    """Token -> channel lookup shared with the web app. Thread-safe."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._channels: dict[str, PortalChannel] = {}

    def add(self, channel: PortalChannel) -> None:
        with self._lock:
            self._channels[channel.token] = channel

    def get(self, token: str) -> PortalChannel | None:
        with self._lock:
            return self._channels.get(token)

    def remove(self, token: str) -> PortalChannel | None:
        with self._lock:
            return self._channels.pop(token, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._channels)
