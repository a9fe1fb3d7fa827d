"""HTTP client for the shop API used by the web front end."""

from __future__ import annotations

import math
import os
from decimal import Decimal
from http import HTTPStatus
from pathlib import Path
from urllib.parse import quote

import requests

from .models import PaginatedResponse, Pagination, Product, ProductType
from .products import FilterKind, parse_type_filter

DEFAULT_PRODUCTS_BASE_URL = "http://localhost:8080"
UNSET_BASE_URL = "unknown"
IMAGE_FIELD = "main_image[]"
IMAGE_MIME = "image/jpeg"
DEFAULT_IMAGE_NAME = "image.jpg"


class ClientError(Exception):
    """A failed call to the shop API; the message says what went wrong."""


def _status_text(response: requests.Response) -> str:
    code = response.status_code
    try:
        phrase = HTTPStatus(code).phrase
    except ValueError:
        phrase = response.reason or "<unknown status code>"
    return f"{code} {phrase}"


def _format_number(value: float) -> str:
    value = float(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    if value.is_integer():
        return str(int(value))
    return format(Decimal(repr(value)), "f")


def _page(payload, convert) -> PaginatedResponse:
    return PaginatedResponse(
        data=[convert(item) for item in payload["data"]],
        pagination=Pagination.from_dict(payload["pagination"]),
    )


_PARSE_ERRORS = (ValueError, TypeError, KeyError, AttributeError)


class ApiClient:
    """Talks to the shop API at ``base_url``."""

    def __init__(self, base_url=None, session=None):
        self.base_url = base_url
        self.session = session if session is not None else requests.Session()

    @classmethod
    def from_env(cls, session=None) -> ApiClient:
        """Build a client whose base URL comes from the ``API`` variable."""
        return cls(os.environ.get("API"), session)

    def _url(self, path: str, fallback: str = UNSET_BASE_URL) -> str:
        base = self.base_url if self.base_url is not None else fallback
        return f"{base}{path}"

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        try:
            return self.session.request(method, url, **kwargs)
        except requests.RequestException as exc:
            raise ClientError(f"Request error: {exc}") from exc

    @staticmethod
    def _check(response: requests.Response) -> None:
        if 200 <= response.status_code < 300 or response.status_code == 302:
            return
        raise ClientError(
            f"Backend error: {_status_text(response)}, Details: {response.text}"
        )

    def fetch_products(self, page=1, search=None, type_id=None) -> PaginatedResponse:
        """Fetch one page of products, optionally filtered by name and type."""
        params = [("page", str(page))]
        if search:
            params.append(("search", search))
        if type_id is not None:
            type_filter = parse_type_filter(type_id)
            if type_filter.kind is FilterKind.IS_NULL:
                params.append(("type_id", "null"))
            elif type_filter.kind is FilterKind.EQUAL:
                params.append(("type_id", str(type_filter.type_id)))

        url = self._url("/api/products", DEFAULT_PRODUCTS_BASE_URL)
        response = self._request("GET", url, params=params)
        if not 200 <= response.status_code < 300:
            raise ClientError(f"API error: {_status_text(response)} - {response.text}")
        try:
            return _page(response.json(), Product.from_dict)
        except _PARSE_ERRORS as exc:
            raise ClientError(f"Failed to parse JSON: {exc}") from exc

    def fetch_product_types(self, page=1, search=None) -> PaginatedResponse:
        """Fetch one page of product types, optionally filtered by name."""
        query = [f"page={page}"]
        if search is not None and search.strip():
            query.append(f"search={quote(search, safe='')}")
        url = self._url("/api/product-types") + "?" + "&".join(query)

        response = self._request("GET", url)
        try:
            return _page(response.json(), ProductType.from_dict)
        except _PARSE_ERRORS as exc:
            raise ClientError(f"JSON error: {exc}") from exc

    def fetch_all_product_types(self) -> list[ProductType]:
        """Fetch every product type, page after page."""
        all_types: list[ProductType] = []
        page = 1
        while True:
            result = self.fetch_product_types(page, None)
            all_types.extend(result.data)
            if page >= result.pagination.total_pages:
                return all_types
            page += 1

    @staticmethod
    def _image_parts(file_paths) -> list[tuple]:
        parts = []
        for file_path in file_paths:
            path = Path(file_path)
            try:
                content = path.read_bytes()
            except OSError as exc:
                raise ClientError(f"Failed to read file {file_path}: {exc}") from exc
            parts.append((IMAGE_FIELD, (path.name or DEFAULT_IMAGE_NAME, content, IMAGE_MIME)))
        return parts

    def _post_form(self, url: str, fields: dict, file_paths) -> None:
        files = self._image_parts(file_paths)
        if not files:
            # Keep the body multipart even without images.
            files = {}
            data = fields
            response = self._request(
                "POST",
                url,
                files={key: (None, value) for key, value in data.items()},
                allow_redirects=False,
            )
        else:
            response = self._request(
                "POST", url, data=fields, files=files, allow_redirects=False
            )
        self._check(response)

    def post_product(self, name, price, stock, detail, product_type_name, file_paths) -> None:
        """Send a new product with its images to the API."""
        fields = {
            "name": name,
            "price": _format_number(price),
            "stock": str(stock),
            "detail": detail,
            "product_type_name": product_type_name,
        }
        self._post_form(self._url("/api/products"), fields, file_paths)

    def post_product_type(self, name, file_paths) -> None:
        """Send a new product type with its images to the API."""
        self._post_form(self._url("/api/product-types"), {"name": name}, file_paths)

    def _delete(self, path: str) -> None:
        response = self._request("DELETE", self._url(path))
        self._check(response)

    def delete_product(self, product_id) -> None:
        """Delete a product."""
        self._delete(f"/api/products/{product_id}")

    def delete_product_type_all(self, type_id) -> None:
        """Delete a product type together with its products."""
        self._delete(f"/api/product-types-all/{type_id}")

    def delete_product_type(self, type_id) -> None:
        """Delete a product type, keeping its products untyped."""
        self._delete(f"/api/product-types/{type_id}")