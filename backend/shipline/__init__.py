"""Shipline: continuous-delivery pipeline for the web application."""

__version__ = "0.1.0"
__author__ = "Shipline Team"

__all__ = ["__version__", "__author__"]
