import io
import sqlite3
from unittest import mock

import pytest

from shopsystem.products import PRODUCTS_PAGE_URL
from shopsystem.server import create_app, main


@pytest.fixture
def images_root(tmp_path):
    root = tmp_path / "dbimages"
    root.mkdir()
    return root


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "shop.db"


@pytest.fixture
def client(db_path, images_root):
    app = create_app(db_path, images_root)
    app.config["TESTING"] = True
    return app.test_client()


def _post_type(client, name, payload=b"type-image"):
    data = {"name": name, "main_image[]": (io.BytesIO(payload), "a.jpg")}
    return client.post(
        "/api/product-types", data=data, content_type="multipart/form-data"
    )


def _post_product(client, name, payload=b"product-image"):
    data = {
        "name": name,
        "price": "9.5",
        "stock": "3",
        "detail": '{"color": "red"}',
        "product_type_name": "",
        "main_image[]": (io.BytesIO(payload), "p.jpg"),
    }
    return client.post("/api/products", data=data, content_type="multipart/form-data")


def test_create_app_creates_tables(db_path, images_root):
    create_app(db_path, images_root)
    with sqlite3.connect(db_path) as conn:
        names = {
            row[0]
            for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
        }
    assert {"products_type", "products", "images"} <= names


def test_post_product_type_and_list(client):
    response = _post_type(client, "phones", b"phone-bytes")
    assert response.status_code == 200
    assert response.get_data(as_text=True) == "Product type post successfully"

    listing = client.get("/api/product-types").get_json()
    assert [item["name"] for item in listing["data"]] == ["phones"]
    assert listing["pagination"]["total_items"] == 1

    image_url = listing["data"][0]["images_path"][0]
    assert image_url.startswith("/images/")
    image = client.get(image_url)
    assert image.status_code == 200
    assert image.data == b"phone-bytes"


def test_post_product_type_requires_name(client):
    response = _post_type(client, "")
    assert response.status_code == 400
    assert response.get_data(as_text=True) == "Missing product type name"


def test_missing_image_falls_back_to_404_image(client, images_root):
    (images_root / "404.jpg").write_bytes(b"fallback")
    response = client.get("/images/nowhere/missing.jpg")
    assert response.status_code == 200
    assert response.data == b"fallback"


def test_missing_image_without_fallback_is_not_found(client):
    response = client.get("/images/nowhere/missing.jpg")
    assert response.status_code == 404


def test_post_product_redirects_and_lists(client):
    response = _post_product(client, "lamp")
    assert response.status_code == 302
    assert response.headers["Location"] == PRODUCTS_PAGE_URL

    listing = client.get("/api/products").get_json()
    product = listing["data"][0]
    assert product["name_product"] == "lamp"
    assert product["price"] == 9.5
    assert product["stock"] == 3
    assert product["detail"] == {"color": "red"}
    assert product["products_type_id"] is None


def test_put_product_replaces_fields(client):
    _post_product(client, "lamp")
    product_id = client.get("/api/products").get_json()["data"][0]["id"]

    body = {
        "name_product": "desk lamp",
        "price": 12.0,
        "detail": {"size": "large"},
        "images_path": [],
        "stock": 7,
        "products_type_name": None,
    }
    response = client.put(f"/api/products/{product_id}", json=body)
    assert response.get_data(as_text=True) == "Product updated successfully"

    product = client.get("/api/products").get_json()["data"][0]
    assert product["name_product"] == "desk lamp"
    assert product["stock"] == 7
    assert product["images_path"] == []


def test_delete_product_removes_row_and_folder(client, images_root):
    _post_product(client, "lamp")
    product = client.get("/api/products").get_json()["data"][0]
    folder = images_root / product["images_path"][0][len("/images/"):]
    assert folder.parent.exists()

    response = client.delete(f"/api/products/{product['id']}")
    assert response.get_data(as_text=True) == "Product deleted successfully"
    assert client.get("/api/products").get_json()["data"] == []
    assert not folder.parent.exists()


def test_invalid_page_is_bad_request(client):
    response = client.get("/api/products?page=abc")
    assert response.status_code == 400


def test_main_runs_on_default_address(tmp_path):
    db_file = tmp_path / "main.db"
    with mock.patch("flask.Flask.run") as run:
        main(["--db", str(db_file), "--images", str(tmp_path)])
    run.assert_called_once_with(host="127.0.0.1", port=2001)
    assert db_file.exists()