"""The shop web front end: HTML pages, upload forms and an image proxy."""

from __future__ import annotations

import argparse
import io
import os
import re
from contextlib import suppress
from pathlib import Path

import requests
from dotenv import load_dotenv
from flask import Flask, Response, redirect, render_template, request
from PIL import Image

from .client import ApiClient, ClientError
from .models import ApiError, PageQuery

DEFAULT_TEMPLATE_DIR = "public"
DEFAULT_UPLOAD_DIR = "./temp_uploads"
DEFAULT_IMAGE_BASE_URL = "http://localhost:2001"
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8080
UNKNOWN_FILENAME = "unknown.jpg"
IMAGE_FIELD = "main_image[]"

_FLOAT = re.compile(
    r"[+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|inf|infinity|nan)", re.IGNORECASE
)
_UNSIGNED = re.compile(r"\+?\d+")
_U64_MAX = 2**64 - 1
_U32_MAX = 2**32 - 1


def _text(body: str, status: int) -> Response:
    return Response(body, status=status, mimetype="text/plain")


def _parse_float(text: str) -> float:
    return float(text) if _FLOAT.fullmatch(text) else 0.0


def _parse_unsigned(text: str, limit: int) -> int | None:
    if not _UNSIGNED.fullmatch(text):
        return None
    value = int(text)
    return value if value <= limit else None


def _last(form, key: str) -> str:
    values = form.getlist(key)
    return values[-1] if values else ""


def _page_query() -> PageQuery:
    query = PageQuery.from_args(request.args)
    if query.page is not None and not 0 <= query.page <= _U32_MAX:
        raise ApiError(400, f"Query deserialize error: invalid page {query.page}")
    return query


def create_app(
    client=None,
    template_dir=DEFAULT_TEMPLATE_DIR,
    upload_dir=DEFAULT_UPLOAD_DIR,
    image_base_url=DEFAULT_IMAGE_BASE_URL,
) -> Flask:
    """Build the front-end application talking to the API through ``client``."""
    if client is None:
        client = ApiClient.from_env()
    app = Flask(__name__, template_folder=os.path.abspath(str(template_dir)))
    upload_root = Path(upload_dir)

    @app.errorhandler(ApiError)
    def _handle_api_error(error: ApiError):
        return _text(error.message, error.status)

    def _render(name: str, context: dict) -> Response:
        try:
            html = render_template(name, **context)
        except Exception as exc:  # any template failure becomes a 500 page
            print(f"Template render error: {exc!r}")
            return _text("Template render error", 500)
        return Response(html, status=200, mimetype="text/html")

    def _save_uploads() -> list[str]:
        try:
            upload_root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ApiError(500, f"Failed to create temp directory: {exc}") from exc
        saved = []
        for storage in request.files.getlist(IMAGE_FIELD):
            filename = Path(storage.filename or "").name or UNKNOWN_FILENAME
            file_path = f"{upload_root}/{filename}"
            try:
                storage.save(file_path)
            except OSError as exc:
                raise ApiError(500, f"Failed to create file: {exc}") from exc
            saved.append(file_path)
        return saved

    def _remove(paths) -> None:
        for path in paths:
            with suppress(OSError):
                os.remove(path)

    def _forward(action, paths, location: str) -> Response:
        try:
            action()
        except ClientError as exc:
            return _text(f"Error forwarding to backend: {exc}", 500)
        finally:
            _remove(paths)
        return redirect(location, code=302)

    @app.get("/products")
    def products_page():
        query = _page_query()
        page = 1 if query.page is None else query.page
        context: dict = {}
        try:
            result = client.fetch_products(page, query.search, query.type_id)
        except ClientError as err:
            context["error"] = str(err)
        else:
            context["pagination"] = result.pagination.to_dict()
            context["products"] = [item.to_dict() for item in result.data]
            first = result.data[0] if result.data else None
            detail = first.detail if first is not None else None
            context["detail_map"] = detail if isinstance(detail, dict) else {}
        try:
            types = client.fetch_all_product_types()
        except ClientError as err:
            context["product_type_error"] = str(err)
        else:
            context["product_types"] = [t.to_dict() for t in types]
        return _render("products.html", context)

    @app.get("/product-types")
    def product_types_page():
        query = _page_query()
        page = 1 if query.page is None else query.page
        context: dict = {}
        if query.search is not None:
            context["search"] = query.search
        try:
            result = client.fetch_product_types(page, query.search)
        except ClientError as err:
            context["error"] = str(err)
        else:
            context["pagination"] = result.pagination.to_dict()
            context["product_types"] = [t.to_dict() for t in result.data]
        return _render("type_products.html", context)

    @app.post("/api/product/upload")
    def upload_product():
        form = request.form
        name = _last(form, "name")
        price = _parse_float(_last(form, "price"))
        stock = _parse_unsigned(_last(form, "stock"), _U64_MAX) or 0
        detail = _last(form, "detail")
        type_name = _last(form, "product_type_name")
        paths = _save_uploads()
        return _forward(
            lambda: client.post_product(name, price, stock, detail, type_name, paths),
            paths,
            "/products",
        )

    @app.post("/api/product-type/upload")
    def upload_product_type():
        name = _last(request.form, "name")
        paths = _save_uploads()
        if not name:
            _remove(paths)
            return _text("Missing product type name", 400)
        if not paths:
            return _text("No images uploaded", 400)
        return _forward(
            lambda: client.post_product_type(name, paths), paths, "/product-types"
        )

    def _delete_form(action, location: str) -> Response:
        raw = request.form.get("delete_id")
        item_id = None if raw is None else _parse_unsigned(raw, _U64_MAX)
        if item_id is None:
            return _text("Invalid or missing delete_id", 400)
        try:
            action(item_id)
        except ClientError as exc:
            return _text(f"Failed to delete: {exc}", 500)
        return redirect(location, code=302)

    @app.post("/api/products/delete")
    def delete_product_form():
        return _delete_form(client.delete_product, "/products")

    @app.post("/api/product-type-all/delete")
    def delete_product_type_all_form():
        return _delete_form(client.delete_product_type_all, "/product-types")

    @app.post("/api/product-type/delete")
    def delete_product_type_form():
        return _delete_form(client.delete_product_type, "/product-types")

    @app.get("/api/images/", defaults={"tail": ""})
    @app.get("/api/images/<path:tail>")
    def proxy_images(tail: str):
        target_url = f"{str(image_base_url).rstrip('/')}/{tail}"
        try:
            response = requests.get(target_url)
        except requests.RequestException as exc:
            print(f"Failed to fetch image from URL: {exc}")
            return _text("Invalid or missing image", 400)
        if 200 <= response.status_code < 300:
            try:
                with Image.open(io.BytesIO(response.content)) as image:
                    image.load()
                    buffer = io.BytesIO()
                    image.save(buffer, format="PNG")
            except (OSError, ValueError) as exc:
                print(f"Failed to convert image: {exc}")
            else:
                return Response(buffer.getvalue(), status=200, mimetype="image/png")
        return _text("Invalid or missing image", 400)

    return app


def main(argv=None) -> None:
    """Run the web front end."""
    load_dotenv()
    parser = argparse.ArgumentParser(description="Run the shop web front end.")
    parser.add_argument("--templates", default=DEFAULT_TEMPLATE_DIR)
    parser.add_argument("--uploads", default=DEFAULT_UPLOAD_DIR)
    parser.add_argument("--images", default=DEFAULT_IMAGE_BASE_URL)
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    args = parser.parse_args(argv)

    app = create_app(ApiClient.from_env(), args.templates, args.uploads, args.images)
    app.run(host=args.host, port=args.port)


if __name__ == "__main__":
    main()