from .client import ClovaLinkClient

__all__ = ["ClovaLinkClient"]
