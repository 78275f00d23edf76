"""
Domain package for the Storefront Service: local records, request schemas,
the fetch outcome type and admin credential checks.
"""

from .models import Book, Category, CatalogImage, CategoryBooks, Event, SearchHit
from .results import FetchResult

__all__ = [
    "Book",
    "Category",
    "CatalogImage",
    "CategoryBooks",
    "Event",
    "SearchHit",
    "FetchResult",
]
