"""CLI package exports for top-level command entry points."""

from __future__ import annotations

from .main import VBoxProvModalCLI, main

__all__ = ['VBoxProvModalCLI', 'main']
