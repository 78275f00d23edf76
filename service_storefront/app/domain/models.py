"""
Local data model for catalog objects served by the storefront.

Upstream catalog objects are reshaped into these records before they are
cached. Payloads use the camelCase field names the storefront frontend reads.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


DEFAULT_CURRENCY = "USD"
DEFAULT_BOOK_NAME = "Unnamed Book"
DEFAULT_DESCRIPTION = "No description available"


@dataclass(frozen=True)
class Category:
    """Catalog category."""

    id: str
    name: str
    parent_category_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"id": self.id, "name": self.name}
        if self.parent_category_id is not None:
            payload["parentCategoryId"] = self.parent_category_id
        return payload

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "Category":
        return cls(
            id=payload["id"],
            name=payload.get("name") or "Unnamed Category",
            parent_category_id=payload.get("parentCategoryId"),
        )

    @classmethod
    def from_catalog_object(cls, obj: Dict[str, Any]) -> "Category":
        """Build a category from an upstream CATEGORY object."""
        data = obj.get("category_data") or {}
        parent = data.get("parent_category") or {}
        return cls(
            id=obj["id"],
            name=data.get("name") or "Unnamed Category",
            parent_category_id=parent.get("id"),
        )


@dataclass(frozen=True)
class Book:
    """Catalog item sold by the store."""

    id: str
    name: str
    description: str
    price: float
    currency: str = DEFAULT_CURRENCY
    category_id: Optional[str] = None
    image_id: Optional[str] = None
    image_url: Optional[str] = None
    variation_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price": self.price,
            "currency": self.currency,
            "categoryId": self.category_id,
            "imageId": self.image_id,
            "imageUrl": self.image_url,
            "variationId": self.variation_id,
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "Book":
        return cls(
            id=payload["id"],
            name=payload.get("name") or DEFAULT_BOOK_NAME,
            description=payload.get("description") or DEFAULT_DESCRIPTION,
            price=float(payload.get("price") or 0),
            currency=payload.get("currency") or DEFAULT_CURRENCY,
            category_id=payload.get("categoryId"),
            image_id=payload.get("imageId"),
            image_url=payload.get("imageUrl"),
            variation_id=payload.get("variationId"),
        )

    @classmethod
    def from_catalog_object(cls, obj: Dict[str, Any], category_id: Optional[str] = None) -> "Book":
        """Build a book from an upstream ITEM object.

        Price comes from the first variation and is stored upstream in minor
        currency units.
        """
        data = obj.get("item_data") or {}
        variations = data.get("variations") or []
        variation = variations[0] if variations else {}
        money = (variation.get("item_variation_data") or {}).get("price_money") or {}
        image_ids = data.get("image_ids") or []

        if category_id is None:
            categories = data.get("categories") or []
            if categories:
                category_id = categories[0].get("id")
            else:
                category_id = data.get("category_id")

        return cls(
            id=obj["id"],
            name=data.get("name") or DEFAULT_BOOK_NAME,
            description=data.get("description") or DEFAULT_DESCRIPTION,
            price=int(money.get("amount") or 0) / 100,
            currency=money.get("currency") or DEFAULT_CURRENCY,
            category_id=category_id,
            image_id=image_ids[0] if image_ids else None,
            variation_id=variation.get("id"),
        )

    def with_image_url(self, image_url: Optional[str]) -> "Book":
        return Book(
            id=self.id,
            name=self.name,
            description=self.description,
            price=self.price,
            currency=self.currency,
            category_id=self.category_id,
            image_id=self.image_id,
            image_url=image_url,
            variation_id=self.variation_id,
        )


@dataclass(frozen=True)
class CatalogImage:
    """Resolved image reference."""

    id: str
    image_url: Optional[str]
    name: Optional[str] = None
    caption: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "imageUrl": self.image_url,
            "name": self.name,
            "caption": self.caption,
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "CatalogImage":
        return cls(
            id=payload["id"],
            image_url=payload.get("imageUrl"),
            name=payload.get("name"),
            caption=payload.get("caption"),
        )

    @classmethod
    def from_catalog_object(cls, obj: Dict[str, Any]) -> "CatalogImage":
        data = obj.get("image_data") or {}
        return cls(
            id=obj["id"],
            image_url=data.get("url"),
            name=data.get("name"),
            caption=data.get("caption"),
        )


@dataclass
class CategoryBooks:
    """Books listed under one category together with summary counts."""

    category_id: str
    books: List[Book] = field(default_factory=list)

    @property
    def books_with_image_ids(self) -> int:
        return sum(1 for book in self.books if book.image_id)

    def limited(self, limit: Optional[int]) -> "CategoryBooks":
        """Return a copy holding at most ``limit`` books."""
        if not limit or limit <= 0:
            return CategoryBooks(self.category_id, list(self.books))
        return CategoryBooks(self.category_id, self.books[:limit])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "categoryId": self.category_id,
            "books": [book.to_dict() for book in self.books],
            "metadata": {
                "totalBooks": len(self.books),
                "booksWithImageIds": self.books_with_image_ids,
            },
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "CategoryBooks":
        return cls(
            category_id=payload.get("categoryId", ""),
            books=[Book.from_dict(item) for item in payload.get("books", [])],
        )


@dataclass(frozen=True)
class SearchHit:
    """Ranked hit from the vector search provider."""

    id: str
    score: float
    title: str
    author: str = ""
    summary: str = ""
    snippet: str = ""

    @classmethod
    def from_record(cls, hit: Dict[str, Any]) -> Optional["SearchHit"]:
        fields = hit.get("fields") or {}
        hit_id = fields.get("ID") or hit.get("_id")
        if not hit_id:
            return None
        return cls(
            id=str(hit_id),
            score=float(hit.get("_score") or 0.0),
            title=fields.get("document_title") or "Unknown Title",
            author=fields.get("author") or "",
            summary=fields.get("summary") or fields.get("chunk_text") or "",
            snippet=fields.get("chunk_text") or "",
        )

    def to_snippet(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "snippet": self.snippet,
            "score": self.score,
        }


@dataclass(frozen=True)
class Event:
    """Store event read from the content feed."""

    event_name: str
    date: str
    description: str
    image_url: str
    location: str
    link: str
    active: bool

    @classmethod
    def from_row(cls, row: List[str]) -> "Event":
        """Map a sheet row positionally."""
        def cell(index: int) -> str:
            return row[index] if index < len(row) and row[index] else ""

        return cls(
            event_name=cell(0) or "Unnamed Event",
            date=cell(1),
            description=cell(2),
            image_url=cell(3) or "/images/events/default.jpg",
            location=cell(4) or "TBD",
            link=cell(5) or "#",
            active=cell(6).upper() == "TRUE",
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "eventName": self.event_name,
            "date": self.date,
            "description": self.description,
            "imageUrl": self.image_url,
            "location": self.location,
            "link": self.link,
            "active": self.active,
        }
