"""Production data agent: answers questions about production and quality reports."""

from __future__ import annotations

__version__ = "0.1.0"
