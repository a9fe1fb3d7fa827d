"""Product storage operations and the HTTP endpoints that expose them."""

from __future__ import annotations

import enum
import json
import os
import re
import shutil
import sqlite3
from dataclasses import dataclass
from typing import Any, Callable, Iterable

from flask import Blueprint, Response, jsonify, redirect, request

from .db import transaction
from .images import save_upload, to_web_path
from .models import (
    ITEMS_PER_PAGE,
    ApiError,
    NewProduct,
    PageQuery,
    Pagination,
    PaginatedResponse,
    Product,
)

PRODUCTS_PAGE_URL = "http://localhost:8080/products"
DEFAULT_TYPE_FOLDER = "other"
TEMP_PRODUCT_NAME = "temp_product"

_FLOAT = re.compile(
    r"[+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|inf|infinity|nan)", re.IGNORECASE
)
_INT = re.compile(r"[+-]?\d+")
_I32_MIN, _I32_MAX = -(2**31), 2**31 - 1


class FilterKind(enum.Enum):
    """How the listing is narrowed by product type."""

    NONE = "none"
    IS_NULL = "is_null"
    EQUAL = "equal"


@dataclass(frozen=True)
class TypeFilter:
    """A parsed ``type_id`` query value."""

    kind: FilterKind
    type_id: int | None = None


def parse_type_filter(type_id) -> TypeFilter:
    """Interpret ``type_id``: absent or unparsable means no filter, ``"null"`` means untyped."""
    if type_id is None:
        return TypeFilter(FilterKind.NONE)
    if type_id == "null":
        return TypeFilter(FilterKind.IS_NULL)
    if _INT.fullmatch(type_id):
        value = int(type_id)
        if -(2**63) <= value < 2**63:
            return TypeFilter(FilterKind.EQUAL, value)
    return TypeFilter(FilterKind.NONE)


def _execute(conn, sql: str, params: tuple, message: str) -> sqlite3.Cursor:
    try:
        return conn.execute(sql, params)
    except sqlite3.Error as exc:
        raise ApiError(500, message) from exc


def _decode_detail(raw: Any) -> Any:
    if raw is None:
        return None
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")
    if not isinstance(raw, str):
        return raw
    return json.loads(raw)


def list_products(conn, search, page, type_id, images_root) -> PaginatedResponse:
    """Return one page of products whose name contains ``search``."""
    term = search or ""
    page = 1 if not page else page
    offset = (page - 1) * ITEMS_PER_PAGE
    type_filter = parse_type_filter(type_id)

    condition = ""
    extra: tuple = ()
    if type_filter.kind is FilterKind.IS_NULL:
        condition = " AND p.products_type_id IS NULL"
    elif type_filter.kind is FilterKind.EQUAL:
        condition = " AND p.products_type_id = ?"
        extra = (type_filter.type_id,)

    count_sql = (
        "SELECT COUNT(*) FROM products p "
        "WHERE p.name_products LIKE '%' || ? || '%'" + condition
    )
    products_sql = (
        "SELECT p.id, p.name_products, p.price, p.detail, p.stock, p.created_at, "
        "p.products_type_id, pt.products_type_name "
        "FROM products p LEFT JOIN products_type pt ON p.products_type_id = pt.id "
        "WHERE p.name_products LIKE '%' || ? || '%'" + condition +
        " ORDER BY p.id LIMIT ? OFFSET ?"
    )

    try:
        total = conn.execute(count_sql, (term, *extra)).fetchone()[0]
        rows = conn.execute(
            products_sql, (term, *extra, ITEMS_PER_PAGE, offset)
        ).fetchall()
        products = {
            row["id"]: Product(
                id=row["id"],
                name_product=row["name_products"],
                price=float(row["price"]),
                detail=_decode_detail(row["detail"]),
                stock=row["stock"],
                create_at=row["created_at"],
                products_type_id=row["products_type_id"],
                products_type_name=row["products_type_name"],
            )
            for row in rows
        }
    except (sqlite3.Error, ValueError, TypeError) as exc:
        raise ApiError(500, "Database query failed") from exc

    if products:
        placeholders = ", ".join("?" for _ in products)
        try:
            image_rows = conn.execute(
                "SELECT product_id, image_path FROM images "
                f"WHERE product_id IN ({placeholders}) ORDER BY product_id, id",
                tuple(products),
            ).fetchall()
        except sqlite3.Error:
            image_rows = []
        for row in image_rows:
            web_path = to_web_path(row["image_path"], images_root)
            owner = products.get(row["product_id"])
            if web_path is not None and owner is not None:
                owner.images_path.append(web_path)

    return PaginatedResponse(
        data=list(products.values()),
        pagination=Pagination.from_total(total, ITEMS_PER_PAGE, page),
    )


def _lookup_type_id(conn, type_name: str) -> int:
    row = _execute(
        conn,
        "SELECT id FROM products_type WHERE products_type_name = ?",
        (type_name,),
        "Failed to find product type",
    ).fetchone()
    if row is None:
        raise ApiError(400, "Invalid product type name")
    return row[0]


def create_product(
    conn, name, price, detail, stock, product_type_name, uploads: Iterable[Any], images_root
) -> int:
    """Store the uploaded images and insert a new product; return its id.

    A type name of ``"null"`` files the images under ``other``; an empty name
    or ``other`` leaves the product without a type.
    """
    uploads = list(uploads)
    type_name = product_type_name or ""
    if uploads and type_name == "null":
        type_name = DEFAULT_TYPE_FOLDER

    root = str(images_root).rstrip("/")
    folder = f"{root}/{type_name}/{name}"
    file_prefix = name or TEMP_PRODUCT_NAME
    paths = []
    for index, upload in enumerate(uploads):
        file_path = f"{folder}/{file_prefix}_{index}.jpg"
        try:
            save_upload(upload, file_path)
        except OSError as exc:
            raise ApiError(500, "Failed to save file") from exc
        paths.append(file_path)

    try:
        with transaction(conn):
            type_id = None
            if type_name and type_name != DEFAULT_TYPE_FOLDER:
                type_id = _lookup_type_id(conn, type_name)
            cursor = _execute(
                conn,
                "INSERT INTO products (name_products, price, detail, stock, products_type_id) "
                "VALUES (?, ?, ?, ?, ?)",
                (name, price, detail, stock, type_id),
                "Insert failed",
            )
            product_id = cursor.lastrowid
            for path in paths:
                _execute(
                    conn,
                    "INSERT INTO images (image_path, product_id) VALUES (?, ?)",
                    (path, product_id),
                    "Insert image failed",
                )
    except sqlite3.Error as exc:
        raise ApiError(500, "Transaction commit failed") from exc
    return product_id


def update_product(conn, product_id, new_product: NewProduct) -> None:
    """Replace a product's fields and its list of image paths."""
    try:
        with transaction(conn):
            type_id = None
            if new_product.products_type_name is not None:
                type_id = _lookup_type_id(conn, new_product.products_type_name)
            _execute(
                conn,
                "UPDATE products SET name_products = ?, price = ?, detail = ?, "
                "stock = ?, products_type_id = ? WHERE id = ?",
                (
                    new_product.name_product,
                    new_product.price,
                    json.dumps(new_product.detail),
                    new_product.stock,
                    type_id,
                    product_id,
                ),
                "Update failed",
            )
            _execute(
                conn,
                "DELETE FROM images WHERE product_id = ?",
                (product_id,),
                "Delete old images failed",
            )
            for path in new_product.images_path:
                _execute(
                    conn,
                    "INSERT INTO images (image_path, product_id) VALUES (?, ?)",
                    (path, product_id),
                    "Insert image failed",
                )
    except sqlite3.Error as exc:
        raise ApiError(500, "Transaction commit failed") from exc


def delete_product(conn, product_id) -> None:
    """Delete a product, its image rows and the folder holding its images."""
    try:
        with transaction(conn):
            paths = [
                row[0]
                for row in _execute(
                    conn,
                    "SELECT image_path FROM images WHERE product_id = ?",
                    (product_id,),
                    "Failed to fetch image path of products",
                ).fetchall()
            ]
            if paths:
                parent = os.path.dirname(paths[0])
                if parent and os.path.exists(parent):
                    try:
                        shutil.rmtree(parent)
                    except OSError as exc:
                        raise ApiError(
                            500, f"Failed to delete folder: {exc}, {parent}"
                        ) from exc
            _execute(
                conn,
                "DELETE FROM images WHERE product_id = ?",
                (product_id,),
                "Failed to delete images",
            )
            _execute(
                conn,
                "DELETE FROM products WHERE id = ?",
                (product_id,),
                "Failed to delete product",
            )
    except sqlite3.Error as exc:
        raise ApiError(500, "Transaction commit failed") from exc


def _parse_price(text: str) -> float:
    return float(text) if _FLOAT.fullmatch(text) else 0.0


def _parse_stock(text: str) -> int:
    if not _INT.fullmatch(text):
        return 0
    value = int(text)
    return value if _I32_MIN <= value <= _I32_MAX else 0


def _text(body: str, status: int = 200) -> Response:
    return Response(body, status=status, mimetype="text/plain")


def create_blueprint(get_connection: Callable[[], Any], images_root) -> Blueprint:
    """Build the Flask blueprint serving the product API."""
    bp = Blueprint("products", __name__)

    @bp.errorhandler(ApiError)
    def _handle_api_error(error: ApiError):
        return _text(error.message, error.status)

    @bp.get("/api/products")
    def get_products():
        query = PageQuery.from_args(request.args)
        result = list_products(
            get_connection(), query.search, query.page, query.type_id, images_root
        )
        return jsonify(result.to_dict())

    @bp.post("/api/products")
    def post_products():
        form = request.form
        files = request.files.getlist("main_image") + request.files.getlist(
            "main_image[]"
        )
        create_product(
            get_connection(),
            form.get("name", ""),
            _parse_price(form.get("price", "")),
            form.get("detail", ""),
            _parse_stock(form.get("stock", "")),
            form.get("product_type_name", ""),
            [f.stream for f in files],
            images_root,
        )
        return redirect(PRODUCTS_PAGE_URL, code=302)

    @bp.put("/api/products/<int(signed=True):product_id>")
    def put_product(product_id: int):
        new_product = NewProduct.from_dict(request.get_json(silent=True))
        update_product(get_connection(), product_id, new_product)
        return _text("Product updated successfully")

    @bp.delete("/api/products/<int(signed=True):product_id>")
    def remove_product(product_id: int):
        delete_product(get_connection(), product_id)
        return _text("Product deleted successfully")

    return bp