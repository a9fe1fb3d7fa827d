"""Product-type storage operations and the HTTP endpoints that expose them."""

from __future__ import annotations

import os
import shutil
import sqlite3
from typing import Any, Callable, Iterable

from flask import Blueprint, Response, jsonify, request

from .db import transaction
from .images import save_upload, to_web_path
from .models import (
    ITEMS_PER_PAGE,
    ApiError,
    PageQuery,
    Pagination,
    PaginatedResponse,
    ProductType,
)

_NO_ROWS = "no rows returned by a query that expected to return at least one row"


def _root(images_root) -> str:
    return str(images_root).rstrip("/")


def _execute(conn, sql: str, params: tuple, message: str) -> sqlite3.Cursor:
    try:
        return conn.execute(sql, params)
    except sqlite3.Error as exc:
        raise ApiError(500, message) from exc


def list_product_types(conn, search, page, images_root) -> PaginatedResponse:
    """Return one page of product types whose name contains ``search``."""
    term = search or ""
    page = 1 if page is None else page
    offset = (page - 1) * ITEMS_PER_PAGE

    try:
        total = conn.execute(
            "SELECT COUNT(*) FROM products_type pt "
            "WHERE pt.products_type_name LIKE '%' || ? || '%'",
            (term,),
        ).fetchone()[0]
        rows = conn.execute(
            "SELECT pt.id, pt.products_type_name FROM products_type pt "
            "WHERE pt.products_type_name LIKE '%' || ? || '%' "
            "ORDER BY pt.id LIMIT ? OFFSET ?",
            (term, ITEMS_PER_PAGE, offset),
        ).fetchall()
    except sqlite3.Error as exc:
        raise ApiError(500, "Database query failed") from exc

    types = {
        row["id"]: ProductType(id=row["id"], name=row["products_type_name"])
        for row in rows
    }

    if types:
        placeholders = ", ".join("?" for _ in types)
        try:
            image_rows = conn.execute(
                "SELECT product_type_id, image_path FROM images "
                f"WHERE product_type_id IN ({placeholders}) "
                "ORDER BY product_type_id, id",
                tuple(types),
            ).fetchall()
        except sqlite3.Error:
            image_rows = []
        for row in image_rows:
            web_path = to_web_path(row["image_path"], images_root)
            owner = types.get(row["product_type_id"])
            if web_path is not None and owner is not None:
                owner.images_path.append(web_path)

    return PaginatedResponse(
        data=list(types.values()),
        pagination=Pagination.from_total(total, ITEMS_PER_PAGE, page),
    )


def create_product_type(conn, name, uploads: Iterable[Any], images_root) -> int:
    """Store the uploaded images and insert a new product type; return its id."""
    uploads = list(uploads)
    if not name:
        raise ApiError(400, "Missing product type name")
    if not uploads:
        raise ApiError(400, "At least one image is required")

    folder = f"{_root(images_root)}/{name}/main"
    paths = []
    for index, upload in enumerate(uploads):
        file_path = f"{folder}/{name}_{index}.jpg"
        try:
            save_upload(upload, file_path)
        except OSError as exc:
            raise ApiError(500, "Failed to save file") from exc
        paths.append(file_path)

    try:
        with transaction(conn):
            cursor = _execute(
                conn,
                "INSERT INTO products_type (products_type_name) VALUES (?)",
                (name,),
                "Insert product type failed",
            )
            type_id = cursor.lastrowid
            for path in paths:
                _execute(
                    conn,
                    "INSERT INTO images (image_path, product_type_id) VALUES (?, ?)",
                    (path, type_id),
                    "Insert image failed",
                )
    except sqlite3.Error as exc:
        raise ApiError(500, "Commit failed") from exc
    return type_id


def delete_product_type_all(conn, type_id) -> None:
    """Delete a product type together with its products, images and image folder."""
    try:
        with transaction(conn):
            paths = [
                row[0]
                for row in _execute(
                    conn,
                    "SELECT image_path FROM images WHERE product_type_id = ?",
                    (type_id,),
                    "Failed to fetch image paths",
                ).fetchall()
            ]
            if paths:
                grand_parent = os.path.dirname(os.path.dirname(paths[0]))
                if grand_parent and os.path.exists(grand_parent):
                    try:
                        shutil.rmtree(grand_parent)
                    except OSError as exc:
                        raise ApiError(
                            500, f"Failed to delete directory:{exc} , {grand_parent}"
                        ) from exc
            _execute(
                conn,
                "DELETE FROM images WHERE product_type_id = ?",
                (type_id,),
                "Failed to delete related images",
            )
            _execute(
                conn,
                "DELETE FROM products WHERE products_type_id = ?",
                (type_id,),
                "Failed to delete related products",
            )
            _execute(
                conn,
                "DELETE FROM products_type WHERE id = ?",
                (type_id,),
                "Failed to delete product type",
            )
    except sqlite3.Error as exc:
        raise ApiError(500, "Failed to commit transaction") from exc


def delete_product_type(conn, type_id) -> None:
    """Delete a product type, moving its first product's images under ``other``.

    Products of the type are kept with no type.
    """
    try:
        with transaction(conn):
            row = conn.execute(
                "SELECT id FROM products WHERE products_type_id = ?", (type_id,)
            ).fetchone()
            if row is None:
                raise ApiError(500, f"Failed to get product_id: {_NO_ROWS}")
            product_id = row[0]

            paths = [
                r[0]
                for r in _execute(
                    conn,
                    "SELECT image_path FROM images WHERE product_id = ?",
                    (product_id,),
                    "Failed to fetch image paths",
                ).fetchall()
            ]

            name_row = _execute(
                conn,
                "SELECT products_type_name FROM products_type WHERE id = ?",
                (type_id,),
                "Failed to get name product type",
            ).fetchone()
            if name_row is None:
                raise ApiError(500, "Failed to get name product type")
            type_name = name_row[0]

            for path in paths:
                try:
                    shutil.rmtree(os.path.dirname(path))
                except OSError as exc:
                    raise ApiError(500, f"Failed to create folder: {exc}") from exc

                new_path = path.replace(type_name, "other")
                try:
                    os.makedirs(os.path.dirname(new_path), exist_ok=True)
                except OSError as exc:
                    raise ApiError(500, f"Failed to create folder: {exc}") from exc

                if os.path.exists(path):
                    try:
                        os.rename(path, new_path)
                    except OSError as exc:
                        raise ApiError(500, path) from exc

                try:
                    conn.execute(
                        "UPDATE images SET image_path = ? "
                        "WHERE product_id = ? AND image_path = ?",
                        (new_path, product_id, path),
                    )
                except sqlite3.Error as exc:
                    raise ApiError(500, f"Failed to update images: {exc}") from exc

            _execute(
                conn,
                "UPDATE products SET products_type_id = NULL WHERE products_type_id = ?",
                (type_id,),
                "Failed to update products",
            )
            _execute(
                conn,
                "DELETE FROM products_type WHERE id = ?",
                (type_id,),
                "Failed to delete product type",
            )
    except sqlite3.Error as exc:
        raise ApiError(500, "Failed to commit transaction") from exc


def _text(body: str, status: int = 200) -> Response:
    return Response(body, status=status, mimetype="text/plain")


def create_blueprint(get_connection: Callable[[], Any], images_root) -> Blueprint:
    """Build the Flask blueprint serving the product-type API."""
    bp = Blueprint("product_types", __name__)

    @bp.errorhandler(ApiError)
    def _handle_api_error(error: ApiError):
        return _text(error.message, error.status)

    @bp.get("/api/product-types")
    def get_product_types():
        query = PageQuery.from_args(request.args)
        result = list_product_types(
            get_connection(), query.search, query.page, images_root
        )
        return jsonify(result.to_dict())

    @bp.post("/api/product-types")
    def post_product_types():
        name = request.form.get("name", "")
        files = request.files.getlist("main_image") + request.files.getlist(
            "main_image[]"
        )
        create_product_type(
            get_connection(), name, [f.stream for f in files], images_root
        )
        return _text("Product type post successfully")

    @bp.delete("/api/product-types-all/<int(signed=True):type_id>")
    def delete_all(type_id: int):
        delete_product_type_all(get_connection(), type_id)
        return _text("Product type deleted successfully")

    @bp.delete("/api/product-types/<int(signed=True):type_id>")
    def delete_one(type_id: int):
        delete_product_type(get_connection(), type_id)
        return _text("Product type deleted successfully")

    return bp