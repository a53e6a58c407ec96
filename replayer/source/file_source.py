"""
File-based event source reading JSON-lines files.

Files ending in .gz are decompressed transparently. Multiple files are read
in the order given.
"""

import gzip
import os
import zlib
from typing import Iterator, List, Sequence, Union

from ..core.errors import SourceError
from .store import LineEventSource


class FileEventSource(LineEventSource):
    """
    JSON-lines event source over local files.

    Each non-blank line must be a JSON object carrying the timestamp field.
    """

    def __init__(
        self,
        paths: Union[str, Sequence[str]],
        timestamp_field: str = "dropoff_datetime",
    ) -> None:
        """
        Args:
            paths: One path or a sequence of paths, read in order

        Raises:
            SourceError: If a path does not exist
        """
        super().__init__(timestamp_field)
        self.paths: List[str] = [paths] if isinstance(paths, str) else list(paths)
        for path in self.paths:
            if not os.path.isfile(path):
                raise SourceError(f"source file not found: {path}")

    def _lines(self) -> Iterator[bytes]:
        for path in self.paths:
            opener = gzip.open if path.endswith(".gz") else open
            try:
                with opener(path, "rb") as f:
                    for line in f:
                        yield line
            except (OSError, EOFError, zlib.error) as e:
                raise SourceError(f"failed to read {path}: {e}") from e
