"""
Sick Fits Backend
GraphQL API for the Sick Fits storefront
"""

__version__ = "0.1.0"

from .config import settings

__all__ = ["settings", "__version__"]
