"""Navigable surface implementations."""

from .browser import BrowserSurface

__all__ = ['BrowserSurface']
