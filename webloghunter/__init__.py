"""Apache access log analysis: rule-based attack detection and request replay."""

__version__ = "0.1.0"
__all__ = ["__version__"]