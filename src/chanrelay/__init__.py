"""chanrelay: per-owner Discord channel relay with mention overlays."""

__version__ = "0.1.0"
