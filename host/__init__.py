"""Table host package: serves the draw engine to one controlling client."""

from .server import HostServer

__all__ = ["HostServer"]
