import logging
import math
from enum import Enum
from typing import List

from pydantic import BaseModel, ValidationError

from clipstore.core.exceptions import ProbeError
from clipstore.media.commands import CommandFailedError, CommandRunner

logger = logging.getLogger(__name__)

LANDSCAPE_RANGE = (1.768, 1.788)  # 16:9 is ~1.778
PORTRAIT_RANGE = (0.553, 0.573)  # 9:16 is 0.5625


class AspectRatioLabel(str, Enum):
    LANDSCAPE = "landscape/"
    PORTRAIT = "portrait/"
    OTHER = "other/"


class ProbeStream(BaseModel):
    codec_type: str = ""
    width: int = 0
    height: int = 0


class ProbeOutput(BaseModel):
    streams: List[ProbeStream] = []


def classify_dimensions(width: int, height: int) -> AspectRatioLabel:
    ratio = width / height if height else math.nan

    # NaN fails both comparisons and falls through to OTHER
    if LANDSCAPE_RANGE[0] <= ratio <= LANDSCAPE_RANGE[1]:
        return AspectRatioLabel.LANDSCAPE
    if PORTRAIT_RANGE[0] <= ratio <= PORTRAIT_RANGE[1]:
        return AspectRatioLabel.PORTRAIT
    return AspectRatioLabel.OTHER


def first_visual_dimensions(output: ProbeOutput) -> tuple:
    for stream in output.streams:
        if stream.width and stream.height:
            return stream.width, stream.height
    return 0, 0


class MediaProber:
    def __init__(self, runner: CommandRunner, ffprobe_bin: str = "ffprobe"):
        self.runner = runner
        self.ffprobe_bin = ffprobe_bin

    def probe(self, file_path: str) -> ProbeOutput:
        command = [
            self.ffprobe_bin,
            "-v", "error",
            "-print_format", "json",
            "-show_streams",
            str(file_path),
        ]
        try:
            raw = self.runner.run(command)
        except CommandFailedError as e:
            raise ProbeError(detail=str(e)) from e

        try:
            return ProbeOutput.model_validate_json(raw)
        except ValidationError as e:
            raise ProbeError(detail=f"unparsable ffprobe output: {e}") from e

    def classify(self, file_path: str) -> AspectRatioLabel:
        """
        Inspects a local video file and buckets it by aspect ratio.

        Args:
            file_path (str): Local path to the staged video

        Returns:
            AspectRatioLabel: landscape/, portrait/ or other/

        Raises:
            ProbeError: If ffprobe fails or its output can't be parsed
        """
        width, height = first_visual_dimensions(self.probe(file_path))
        label = classify_dimensions(width, height)
        logger.info(f"Probed {file_path}: {width}x{height} -> {label.value}")
        return label
