from .adapter import KaminoAdapter
from .decoder import KaminoDecoder

__all__ = ["KaminoAdapter", "KaminoDecoder"]
