from .manager import load_entrypoint, load_plugin

__all__ = ["load_entrypoint", "load_plugin"]
