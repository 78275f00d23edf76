"""
Request models for the storefront HTTP surface.
"""

from typing import Any, Dict, List, Optional
from enum import Enum

from pydantic import BaseModel, Field


class InvalidationScope(str, Enum):
    """Cache invalidation scopes."""
    CATEGORIES = "categories"
    BOOKS_BY_CATEGORY = "books-by-category"
    BOOK_DATA = "book-data"
    IMAGE_URLS = "image-urls"
    ALL = "all"


class BookBatchRequest(BaseModel):
    """Request model for batch book retrieval."""
    bookIds: List[str] = Field(default_factory=list, description="Catalog item IDs")


class ImageBatchRequest(BaseModel):
    """Request model for batch image retrieval."""
    imageIds: List[str] = Field(default_factory=list, description="Catalog image IDs")


class CategoryBatchRequest(BaseModel):
    """Request model for batch category retrieval."""
    categoryIds: List[str] = Field(default_factory=list, description="Catalog category IDs")


class CategoryBooksRequest(BaseModel):
    """Request model for loading books of several categories."""
    categoryIds: List[str] = Field(default_factory=list, description="Catalog category IDs")
    limit: Optional[int] = Field(20, description="Books returned per category")


class SearchRequest(BaseModel):
    """Request model for catalog search."""
    query: Optional[str] = Field(None, description="Free text query")
    limit: int = Field(10, ge=1, le=100, description="Maximum number of hits")


class InventoryBatchRequest(BaseModel):
    """Request model for inventory counts."""
    variationIds: List[str] = Field(default_factory=list, description="Item variation IDs")
    locationId: Optional[str] = Field(None, description="Restrict counts to one location")


class InvalidationRequest(BaseModel):
    """Request model for cache invalidation."""
    scope: InvalidationScope = Field(InvalidationScope.ALL, description="Cache scope")
    categoryId: Optional[str] = Field(None, description="Narrow books-by-category or categories scope")
    bookId: Optional[str] = Field(None, description="Narrow book-data scope")
    imageId: Optional[str] = Field(None, description="Narrow image-urls scope")

    def identifier(self) -> Optional[str]:
        """Identifier that narrows the selected scope, if any."""
        if self.scope in (InvalidationScope.CATEGORIES, InvalidationScope.BOOKS_BY_CATEGORY):
            return self.categoryId
        if self.scope == InvalidationScope.BOOK_DATA:
            return self.bookId
        if self.scope == InvalidationScope.IMAGE_URLS:
            return self.imageId
        return None


class StoreData(BaseModel):
    """Pre-assembled snapshot content supplied by a caller."""
    categories: Optional[List[Dict[str, Any]]] = None
    defaultBooks: Optional[Dict[str, List[Dict[str, Any]]]] = None
    imageUrls: Optional[Dict[str, str]] = None


class SuperCachePopulateRequest(BaseModel):
    """Request model for aggregate snapshot population."""
    storeData: Optional[StoreData] = None
