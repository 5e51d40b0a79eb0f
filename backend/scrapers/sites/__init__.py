"""Per-site adapter implementations."""

from .naukri import NaukriAdapter
from .linkedin import LinkedInAdapter

__all__ = ['NaukriAdapter', 'LinkedInAdapter']
