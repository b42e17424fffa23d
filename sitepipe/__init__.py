"""sitepipe — static-site build pipeline with two path modes."""

__version__ = "0.1.0"
