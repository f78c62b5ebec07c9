import logging
import os
from pathlib import Path

from clipstore.core.exceptions import RemuxError
from clipstore.media.commands import CommandFailedError, CommandRunner
from clipstore.media.stager import remove_quietly

logger = logging.getLogger(__name__)

PROCESSING_SUFFIX = ".processing"


class FastStartRemuxer:
    def __init__(self, runner: CommandRunner, ffmpeg_bin: str = "ffmpeg"):
        self.runner = runner
        self.ffmpeg_bin = ffmpeg_bin

    def remux(self, file_path: str) -> str:
        """
        Rewrites a video so its index sits at the front of the file.

        Streams are copied as-is; only the container is rewritten.

        Args:
            file_path (str): Local path to the staged video

        Returns:
            str: Path of the fast-start copy (input path + ".processing")

        Raises:
            RemuxError: If ffmpeg fails or produced no output
        """
        out_path = f"{file_path}{PROCESSING_SUFFIX}"

        # -c copy          → no re-encode
        # -movflags        → move the moov atom ahead of the media data
        # -f mp4           → output suffix isn't a known extension
        command = [
            self.ffmpeg_bin,
            "-y",
            "-i", str(file_path),
            "-c", "copy",
            "-movflags", "faststart",
            "-f", "mp4",
            out_path,
        ]
        try:
            self.runner.run(command)
        except CommandFailedError as e:
            remove_quietly(Path(out_path))
            raise RemuxError(detail=str(e)) from e

        if not os.path.exists(out_path):
            raise RemuxError(detail=f"ffmpeg produced no output at {out_path}")

        logger.info(f"Remuxed {file_path} -> {out_path}")
        return out_path
