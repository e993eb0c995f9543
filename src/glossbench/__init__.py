"""Analytic engine for text decryption and interlinear glossing."""

from __future__ import annotations

__version__ = "0.2.0"
