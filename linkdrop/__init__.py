"""Upload a file, share a link that expires, download it through the link."""

__version__ = "0.1.0"
