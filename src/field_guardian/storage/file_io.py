
from __future__ import annotations

import io
import os
import tempfile
from pathlib import Path
from typing import BinaryIO, TextIO, Union

from ..core.exceptions import KeysetIOError

Source = Union[str, Path, bytes, bytearray, BinaryIO, TextIO]
Sink = Union[str, Path, BinaryIO, TextIO]

SECRET_FILE_MODE = 0o600
PUBLIC_FILE_MODE = 0o644


def read_source(source: Source) -> bytes:
    """Return the full content of a path, an in-memory buffer or a readable stream"""
    if isinstance(source, (bytes, bytearray)):
        return bytes(source)
    if isinstance(source, (str, Path)):
        path = Path(source)
        try:
            return path.read_bytes()
        except OSError as exc:
            raise KeysetIOError(f"Cannot read keyset from {path}: {exc}") from exc
    try:
        data = source.read()
    except (OSError, ValueError) as exc:
        raise KeysetIOError(f"Cannot read keyset stream: {exc}") from exc
    if isinstance(data, str):
        return data.encode("utf-8")
    return data


def write_sink(sink: Sink, data: bytes, *, secret: bool) -> None:
    if isinstance(sink, (str, Path)):
        write_atomic(Path(sink), data, mode=SECRET_FILE_MODE if secret else PUBLIC_FILE_MODE)
        return
    try:
        if isinstance(sink, io.TextIOBase):
            sink.write(data.decode("utf-8"))
        else:
            sink.write(data)
        sink.flush()
    except (OSError, ValueError) as exc:
        raise KeysetIOError(f"Cannot write keyset stream: {exc}") from exc


def write_atomic(path: Path, data: bytes, *, mode: int) -> Path:
    """Write via a temp file in the same directory so readers never see a partial keyset"""
    tmp_name = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.chmod(tmp_name, mode)
        os.replace(tmp_name, path)
    except OSError as exc:
        if tmp_name is not None and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise KeysetIOError(f"Cannot write keyset to {path}: {exc}") from exc
    return path


__all__ = ["PUBLIC_FILE_MODE", "SECRET_FILE_MODE", "Sink", "Source", "read_source", "write_atomic", "write_sink"]
