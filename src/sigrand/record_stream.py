"""
Lazy parser for %%-delimited signature corpora.

A corpus is plain text in which records are separated by a line holding
exactly ``%%``. RecordStream walks the corpus one line at a time and hands
out each record as soon as its closing delimiter is read, so memory use is
bounded by the largest record rather than the whole file.
"""

from pathlib import Path
from typing import IO, Iterator, Optional, Union

from sigrand.errors import CorpusError

DELIMITER = "%%"


def _strip_eol(line: str) -> str:
    if line.endswith("\r\n"):
        return line[:-2]
    if line.endswith("\n"):
        return line[:-1]
    return line


class RecordStream:
    """
    Single-pass iterator over the records of a corpus.

    Each record is returned as a string whose lines all end in ``"\\n"``.
    Once the source is exhausted, or a read fails, the stream is finished for
    good: content after the last delimiter is dropped, never returned as a
    partial record.
    """

    def __init__(self, source: IO, name: Optional[str] = None):
        """
        Wrap an open text or binary stream.

        Args:
            source: Readable line-oriented stream; the RecordStream takes
                ownership and closes it when done
            name: Label used in error messages, usually the corpus path
        """
        self._source = source
        self._name = name or getattr(source, "name", None)
        self._buffer: list = []
        self._finished = False

    @classmethod
    def open(cls, path: Union[str, Path]) -> "RecordStream":
        """Open a corpus file for reading."""
        try:
            source = open(path, "rb")
        except OSError as e:
            raise CorpusError(f"Cannot open signature file ({e.strerror})", str(path)) from e
        return cls(source, name=str(path))

    @property
    def finished(self) -> bool:
        return self._finished

    def __iter__(self) -> Iterator[str]:
        return self

    def __next__(self) -> str:
        while not self._finished:
            try:
                line = self._source.readline()
                if isinstance(line, bytes):
                    line = line.decode("utf-8")
            except (OSError, ValueError) as e:
                # UnicodeDecodeError is a ValueError
                self.close()
                raise CorpusError(f"Error reading signature file ({e})", self._name) from e

            if not line:
                self.close()
                break

            text = _strip_eol(line)
            if text == DELIMITER:
                record = "".join(self._buffer)
                self._buffer = []
                return record
            self._buffer.append(text + "\n")

        raise StopIteration

    def close(self) -> None:
        """Finish the stream and release the underlying source."""
        self._finished = True
        self._buffer = []
        try:
            self._source.close()
        except OSError:
            pass

    def __enter__(self) -> "RecordStream":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
