"""Data shapes exchanged between the shop API, its storage and its web front end."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping

ITEMS_PER_PAGE = 10

_TIMESTAMP = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})[T ](\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?$"
)
_INTEGER = re.compile(r"[+-]?\d+")


class ApiError(Exception):
    """An error that maps onto an HTTP status and a plain-text body."""

    def __init__(self, status, message):
        super().__init__(message)
        self.status = status
        self.message = message


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise ValueError(f"invalid timestamp: {value!r}")
    match = _TIMESTAMP.match(value.strip())
    if match is None:
        raise ValueError(f"invalid timestamp: {value!r}")
    year, month, day, hour, minute, second, fraction = match.groups()
    micro = int((fraction or "0")[:6].ljust(6, "0"))
    return datetime(
        int(year), int(month), int(day), int(hour), int(minute), int(second), micro
    )


def _require(data: Mapping[str, Any], key: str) -> Any:
    if not isinstance(data, Mapping):
        raise ValueError("expected a JSON object")
    if key not in data:
        raise ValueError(f"missing field `{key}`")
    return data[key]


def _as_int(value: Any, key: str, *, unsigned: bool = False) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"field `{key}` must be an integer")
    if unsigned and value < 0:
        raise ValueError(f"field `{key}` must not be negative")
    return value


def _as_float(value: Any, key: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"field `{key}` must be a number")
    return float(value)


def _as_str(value: Any, key: str) -> str:
    if not isinstance(value, str):
        raise ValueError(f"field `{key}` must be a string")
    return value


def _as_str_list(value: Any, key: str) -> list[str]:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValueError(f"field `{key}` must be a list of strings")
    return list(value)


def _optional(value: Any, key: str, convert) -> Any:
    return None if value is None else convert(value, key)


@dataclass
class ProductType:
    """A product category with its gallery images."""

    id: int
    name: str
    images_path: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "images_path": list(self.images_path)}

    @classmethod
    def from_dict(cls, data) -> ProductType:
        return cls(
            id=_as_int(_require(data, "id"), "id"),
            name=_as_str(_require(data, "name"), "name"),
            images_path=_as_str_list(_require(data, "images_path"), "images_path"),
        )


@dataclass
class Product:
    """A stored product as returned by the listing endpoint."""

    id: int
    name_product: str
    price: float
    detail: Any
    stock: int
    create_at: datetime
    images_path: list[str] = field(default_factory=list)
    products_type_id: int | None = None
    products_type_name: str | None = None

    def __post_init__(self) -> None:
        self.create_at = _parse_timestamp(self.create_at)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name_product": self.name_product,
            "price": self.price,
            "detail": self.detail,
            "images_path": list(self.images_path),
            "stock": self.stock,
            "create_at": self.create_at.isoformat(),
            "products_type_id": self.products_type_id,
            "products_type_name": self.products_type_name,
        }

    @classmethod
    def from_dict(cls, data) -> Product:
        return cls(
            id=_as_int(_require(data, "id"), "id"),
            name_product=_as_str(_require(data, "name_product"), "name_product"),
            price=_as_float(_require(data, "price"), "price"),
            detail=_require(data, "detail"),
            images_path=_as_str_list(_require(data, "images_path"), "images_path"),
            stock=_as_int(_require(data, "stock"), "stock"),
            create_at=_parse_timestamp(_require(data, "create_at")),
            products_type_id=_optional(data.get("products_type_id"), "products_type_id", _as_int),
            products_type_name=_optional(
                data.get("products_type_name"), "products_type_name", _as_str
            ),
        )


@dataclass
class NewProduct:
    """The JSON body accepted when a product is replaced."""

    name_product: str
    price: float
    detail: Any
    images_path: list[str]
    stock: int
    products_type_name: str | None = None

    @classmethod
    def from_dict(cls, data) -> NewProduct:
        try:
            return cls(
                name_product=_as_str(_require(data, "name_product"), "name_product"),
                price=_as_float(_require(data, "price"), "price"),
                detail=_require(data, "detail"),
                images_path=_as_str_list(_require(data, "images_path"), "images_path"),
                stock=_as_int(_require(data, "stock"), "stock"),
                products_type_name=_optional(
                    data.get("products_type_name"), "products_type_name", _as_str
                ),
            )
        except ValueError as exc:
            raise ApiError(400, f"Json deserialize error: {exc}") from exc


@dataclass
class Pagination:
    """Paging information attached to every listing."""

    total_items: int
    items_per_page: int
    current_page: int
    total_pages: int

    @classmethod
    def from_total(cls, total_items, items_per_page, current_page) -> Pagination:
        total_pages = (total_items + items_per_page - 1) // items_per_page
        return cls(total_items, items_per_page, current_page, total_pages)

    def to_dict(self) -> dict[str, int]:
        return {
            "total_items": self.total_items,
            "items_per_page": self.items_per_page,
            "current_page": self.current_page,
            "total_pages": self.total_pages,
        }

    @classmethod
    def from_dict(cls, data) -> Pagination:
        return cls(
            **{
                key: _as_int(_require(data, key), key, unsigned=True)
                for key in ("total_items", "items_per_page", "current_page", "total_pages")
            }
        )


@dataclass
class PaginatedResponse:
    """A page of items together with its pagination block."""

    data: list[Any]
    pagination: Pagination

    def to_dict(self) -> dict[str, Any]:
        return {
            "data": [item.to_dict() if hasattr(item, "to_dict") else item for item in self.data],
            "pagination": self.pagination.to_dict(),
        }


@dataclass
class PageQuery:
    """Query-string parameters shared by the listing pages."""

    page: int | None = None
    search: str | None = None
    type_id: str | None = None

    @classmethod
    def from_args(cls, args) -> PageQuery:
        raw_page = args.get("page")
        page = None
        if raw_page is not None:
            if not _INTEGER.fullmatch(raw_page):
                raise ApiError(400, f"Query deserialize error: invalid page {raw_page!r}")
            page = int(raw_page)
        return cls(page=page, search=args.get("search"), type_id=args.get("type_id"))