from datetime import datetime

import pytest

from shopsystem.models import (
    ApiError,
    NewProduct,
    PageQuery,
    PaginatedResponse,
    Pagination,
    Product,
    ProductType,
)


def _product():
    return Product(
        id=7,
        name_product="phone",
        price=199.5,
        detail={"color": "black"},
        stock=3,
        create_at="2024-01-02 03:04:05",
        images_path=["/images/other/phone/phone_0.jpg"],
        products_type_id=None,
        products_type_name=None,
    )


def test_api_error_carries_status_and_message():
    err = ApiError(400, "Invalid product type name")
    assert err.status == 400
    assert str(err) == "Invalid product type name"


def test_product_type_round_trip():
    pt = ProductType(id=1, name="game", images_path=["/images/game/main/game_0.jpg"])
    assert ProductType.from_dict(pt.to_dict()) == pt


def test_product_type_missing_field():
    with pytest.raises(ValueError):
        ProductType.from_dict({"id": 1, "name": "game"})


def test_product_timestamp_is_parsed_from_sqlite_form():
    assert _product().create_at == datetime(2024, 1, 2, 3, 4, 5)


def test_product_serialises_timestamp_in_iso_form():
    assert _product().to_dict()["create_at"] == "2024-01-02T03:04:05"


def test_product_round_trip():
    product = _product()
    assert Product.from_dict(product.to_dict()) == product


def test_product_rejects_bad_timestamp():
    data = _product().to_dict()
    data["create_at"] = "yesterday"
    with pytest.raises(ValueError):
        Product.from_dict(data)


def test_product_fraction_of_second_kept():
    data = _product().to_dict()
    data["create_at"] = "2024-01-02T03:04:05.250"
    assert Product.from_dict(data).create_at.microsecond == 250000


def test_new_product_optional_type_name():
    new = NewProduct.from_dict(
        {"name_product": "mouse", "price": 10, "detail": {}, "images_path": [], "stock": 2}
    )
    assert new.products_type_name is None
    assert new.price == 10.0


def test_new_product_missing_field_is_bad_request():
    with pytest.raises(ApiError) as info:
        NewProduct.from_dict({"name_product": "mouse"})
    assert info.value.status == 400


def test_new_product_wrong_type_is_bad_request():
    with pytest.raises(ApiError) as info:
        NewProduct.from_dict(
            {"name_product": "m", "price": "ten", "detail": {}, "images_path": [], "stock": 1}
        )
    assert info.value.status == 400


@pytest.mark.parametrize("total", [0, 1, 9, 10, 11, 25, 100])
def test_pagination_total_pages_covers_items(total):
    pagination = Pagination.from_total(total, 10, 1)
    assert pagination.total_pages * 10 >= total
    assert max(pagination.total_pages - 1, 0) * 10 < max(total, 1)


def test_pagination_round_trip():
    pagination = Pagination.from_total(11, 10, 2)
    assert Pagination.from_dict(pagination.to_dict()) == pagination


def test_pagination_rejects_negative_values():
    with pytest.raises(ValueError):
        Pagination.from_dict(
            {"total_items": 1, "items_per_page": 10, "current_page": -1, "total_pages": 1}
        )


def test_paginated_response_serialises_items():
    pt = ProductType(id=2, name="book")
    response = PaginatedResponse(data=[pt], pagination=Pagination.from_total(1, 10, 1))
    out = response.to_dict()
    assert out["data"] == [pt.to_dict()]
    assert out["pagination"] == response.pagination.to_dict()


def test_page_query_defaults():
    assert PageQuery.from_args({}) == PageQuery(None, None, None)


def test_page_query_values():
    query = PageQuery.from_args({"page": "3", "search": "ph", "type_id": "null"})
    assert query == PageQuery(page=3, search="ph", type_id="null")


def test_page_query_invalid_page():
    with pytest.raises(ApiError) as info:
        PageQuery.from_args({"page": "abc"})
    assert info.value.status == 400