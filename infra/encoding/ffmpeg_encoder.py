from __future__ import annotations

import asyncio
import contextlib
from pathlib import Path

from domain.errors import EncodeError
from domain.models import FRAME_FILENAME_PATTERN

_STDERR_TAIL_CHARS = 2000


class FfmpegWebpEncoder:
    """
    ``FrameEncoderPort`` that shells out to ffmpeg's libwebp encoder.

    Output is lossy (``quality``), loops forever and is scaled to a fixed
    frame size so artifacts stay small regardless of the page.
    """

    def __init__(
        self,
        *,
        ffmpeg_path: str = "ffmpeg",
        quality: int = 75,
        frame_size: tuple[int, int] = (1280, 720),
        loop: int = 0,
    ) -> None:
        self._ffmpeg_path = ffmpeg_path
        self._quality = quality
        self._frame_size = frame_size
        self._loop = loop

    def build_command(self, frame_dir: Path, output_path: Path, *, fps: int) -> list[str]:
        width, height = self._frame_size
        return [
            self._ffmpeg_path,
            "-y",
            "-loglevel", "error",
            "-framerate", str(fps),
            "-i", str(Path(frame_dir) / FRAME_FILENAME_PATTERN),
            "-vf", f"scale={width}:{height}",
            "-c:v", "libwebp",
            "-lossless", "0",
            "-q:v", str(self._quality),
            "-loop", str(self._loop),
            "-an",
            "-f", "webp",
            str(output_path),
        ]

    async def encode(self, frame_dir: Path, output_path: Path, *, fps: int) -> None:
        cmd = self.build_command(frame_dir, output_path, fps=fps)
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            raise EncodeError(f"ffmpeg not found at {self._ffmpeg_path!r}") from exc
        except OSError as exc:
            raise EncodeError(f"cannot start ffmpeg: {exc}") from exc

        try:
            _, stderr = await process.communicate()
        except asyncio.CancelledError:
            # ffmpeg must not outlive the frame directory it reads from.
            with contextlib.suppress(ProcessLookupError):
                process.kill()
            await process.wait()
            raise
        if process.returncode != 0:
            tail = (stderr or b"").decode("utf-8", errors="replace")[-_STDERR_TAIL_CHARS:]
            raise EncodeError(f"ffmpeg exited with {process.returncode}: {tail.strip()}")
        if not Path(output_path).is_file():
            raise EncodeError("ffmpeg reported success but wrote no output")
