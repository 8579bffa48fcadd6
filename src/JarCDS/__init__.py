"""JarCDS: prepare a class-data sharing archive common to several self-contained Java applications."""

from __future__ import annotations

__version__ = "1.0.0"

__all__ = ["__version__"]
