"""Compile YAML problem descriptions into interactive choice stories."""

__version__ = "0.1.0"
