"""Capture a repository README and publish it as the social preview image."""

__version__ = "0.1.0"
