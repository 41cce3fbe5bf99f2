from .file_io import read_source, write_atomic, write_sink
from .keyset_store import KeysetStore

__all__ = ["KeysetStore", "read_source", "write_atomic", "write_sink"]
