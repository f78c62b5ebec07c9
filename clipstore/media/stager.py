import logging
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Iterator, Optional

from clipstore.core.exceptions import PayloadTooLargeError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1 << 20


def copy_stream(source: BinaryIO, target: BinaryIO, limit: int) -> int:
    """
    Copies ``source`` into ``target`` in chunks and returns the byte count.

    Never writes more than ``limit`` bytes; a stream that is longer raises
    PayloadTooLargeError before the chunk that would cross the limit lands.
    """
    written = 0
    while True:
        chunk = source.read(CHUNK_SIZE)
        if not chunk:
            return written
        if written + len(chunk) > limit:
            raise PayloadTooLargeError(detail=f"stream exceeds {limit} bytes")
        target.write(chunk)
        written += len(chunk)


def remove_quietly(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning(f"Failed to remove scratch file {path}: {e}")


class TempStager:
    def __init__(self, scratch_dir: str, suffix: str = ".mp4"):
        self.scratch_dir = Path(scratch_dir)
        self.suffix = suffix

    @contextmanager
    def stage(
        self, stream: BinaryIO, limit: int, declared_size: Optional[int] = None
    ) -> Iterator[Path]:
        """
        Writes ``stream`` to a randomly named scratch file and yields its path.

        The file is removed when the block exits, however it exits.

        Raises:
            PayloadTooLargeError: If the declared or actual size exceeds ``limit``
            OSError: On read/write failure
        """
        if declared_size is not None and declared_size > limit:
            raise PayloadTooLargeError(detail=f"declared size {declared_size} > {limit}")

        self.scratch_dir.mkdir(parents=True, exist_ok=True)
        fd, name = tempfile.mkstemp(prefix="clipstore-", suffix=self.suffix, dir=self.scratch_dir)
        path = Path(name)
        try:
            with os.fdopen(fd, "wb") as target:
                written = copy_stream(stream, target, limit)
            logger.info(f"Staged {written} bytes to {path}")
            yield path
        finally:
            remove_quietly(path)
