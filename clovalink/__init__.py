"""ClovaLink messaging client: end-to-end encrypted direct messages and group channels."""

__version__ = "0.1.0"
