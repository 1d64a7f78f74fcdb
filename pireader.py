# pireader.py — first occurrence of an integer's decimal string within the digits of Pi
#
# The digit file is a one-liner such as "3.14159265...". It is memory-mapped
# once and searched in place, so a single reader can be shared by every
# worker thread: mmap.find() never touches the file position.

from __future__ import annotations
import logging
import mmap
from typing import Optional

logger = logging.getLogger(__name__)

NOT_FOUND = -1

class PiReader:
    def __init__(self, path: str):
        self.path = path
        self._file = None
        self._map: Optional[mmap.mmap] = None
        try:
            self._file = open(path, "rb")
            if self._file.seek(0, 2) > 0:
                self._map = mmap.mmap(self._file.fileno(), 0, access=mmap.ACCESS_READ)
            else:
                logger.warning("Pi digit file %s is empty; every lookup will miss", path)
        except OSError as e:
            logger.error("Cannot read pi digit file %s: %s", path, e)
            self.close()

    @property
    def available(self) -> bool:
        return self._map is not None

    def __len__(self) -> int:
        return len(self._map) if self._map is not None else 0

    def index(self, number: str) -> int:
        """Byte offset of the first occurrence of `number`, or NOT_FOUND."""
        if self._map is None or not number:
            return NOT_FOUND
        return self._map.find(number.encode("ascii"))

    def close(self) -> None:
        if self._map is not None:
            self._map.close()
            self._map = None
        if self._file is not None:
            self._file.close()
            self._file = None

    def __enter__(self) -> "PiReader":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
