"""Media stacker: group bursts and RAW+JPEG pairs behind a single cover."""

__version__ = "0.1.0"
