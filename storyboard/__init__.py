"""Client-encrypted investigative storyboard graph."""

__version__ = "0.1.0"
