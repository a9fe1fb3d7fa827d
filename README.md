# shopsystem

A small shop catalogue made of two Flask applications:

- **the API server** (`shopsystem.server`) keeps products, product types and
  their images in a SQLite database and an image directory. It serves them as
  JSON.
- **the web front end** (`shopsystem.web`) renders HTML pages for browsing and
  managing the catalogue. It talks to the API server over HTTP through
  `shopsystem.client.ApiClient`.

## Installing

```
pip install .
```

To run the tests as well:

```
pip install ".[test]"
pytest
```

## Running

Start the API server first:

```
shopsystem-api
```

Options:

- `--db`: the SQLite file. The default is `../databases/scr/shop-system.db`.
- `--images`: the image directory. The default is `../databases/dbimages`.
- `--host`: the host. The default is `127.0.0.1`.
- `--port`: the port. The default is `2001`.

The database file is created if it is missing, but its directory must already
exist. The tables are created at startup if they do not exist yet.

Then start the front end:

```
shopsystem-web
```

Options:

- `--templates`: the template directory. The default is `public`.
- `--uploads`: the directory for uploads in progress. The default is
  `./temp_uploads`.
- `--images`: the base URL that images are fetched from. The default is
  `http://localhost:2001`.
- `--host`: the host. The default is `127.0.0.1`.
- `--port`: the port. The default is `8080`.

The front end finds the API server through the `API` environment variable,
for example `API=http://localhost:2001`. It also reads a `.env` file in the
working directory. If `API` is unset, product listings are requested from
`http://localhost:8080`. Every other call then goes to an invalid address
and fails.

## What is not included

The front end renders the Jinja templates `products.html` and
`type_products.html` from its template directory. This package does not ship
them, so you must provide your own. If a template is missing, the page answers
with `500 Template render error`.

## API endpoints

| Method | Path | Purpose |
|---|---|---|
| GET | `/api/products?search=&page=&type_id=` | Lists products, ten per page. `type_id=null` selects products without a type. A `type_id` that is not a number is ignored. |
| POST | `/api/products` | Creates a product from a multipart form with the fields `name`, `price`, `detail`, `stock`, `product_type_name` and `main_image[]` (or `main_image`). Answers with a redirect to `http://localhost:8080/products`. |
| PUT | `/api/products/<id>` | Replaces a product's fields and image list from a JSON body: `name_product`, `price`, `detail`, `images_path`, `stock` and an optional `products_type_name`. |
| DELETE | `/api/products/<id>` | Deletes a product, its image rows and the folder that holds its first image. |
| GET | `/api/product-types?search=&page=` | Lists product types, ten per page. |
| POST | `/api/product-types` | Creates a type from a multipart form with the fields `name` and `main_image[]`. At least one image is required. |
| DELETE | `/api/product-types/<id>` | Deletes a type. Its products are kept without a type, and the images of the first of them move under `other`. The call fails if the type has no products. |
| DELETE | `/api/product-types-all/<id>` | Deletes a type together with its products, image rows and image folder. |
| GET | `/images/<path>` | Serves a stored image. If the image is missing it serves `404.jpg` from the image directory, or answers 404 when that file is missing too. |

Errors come back as plain text with a 4xx or 5xx status.

Images are stored in these places:

- product type images: `<images>/<type>/main/<type>_<n>.jpg`
- product images: `<images>/<type>/<product>/<product>_<n>.jpg`

Listings report each image as an `/images/...` path.

## Front-end pages

- `/products` lists products, with search, type filter and paging. It also
  shows every product type.
- `/product-types` lists product types, with search and paging.
- The upload forms post to `/api/product/upload` and
  `/api/product-type/upload`. Files go in the `main_image[]` field. They are
  stored temporarily in the upload directory, forwarded to the API server,
  and then removed.
- The delete forms post a `delete_id` field to `/api/products/delete`,
  `/api/product-type/delete` and `/api/product-type-all/delete`.
- `/api/images/<path>` fetches `<images base URL>/<path>` and returns it as
  PNG.

## Using it from Python

The client:

```python
from shopsystem.client import ApiClient, ClientError

client = ApiClient("http://localhost:2001")
try:
    page = client.fetch_products(page=1, search="phone")
except ClientError as exc:
    print(exc)
else:
    for product in page.data:
        print(product.name_product, product.price)
    print(page.pagination.total_pages)
```

`ApiClient` also has these methods:

- `fetch_product_types`
- `fetch_all_product_types`
- `post_product`
- `post_product_type`
- `delete_product`
- `delete_product_type`
- `delete_product_type_all`

`ApiClient.from_env()` builds a client from the `API` variable.

You can use the storage operations without HTTP:

```python
from shopsystem.db import connect, create_schema
from shopsystem.products import list_products

conn = connect("shop.db")
create_schema(conn)
result = list_products(conn, search="", page=1, type_id=None, images_root="images")
print(result.to_dict())
```

`shopsystem.product_types` offers these functions:

- `list_product_types`
- `create_product_type`
- `delete_product_type`
- `delete_product_type_all`

`shopsystem.products` offers these functions:

- `list_products`
- `create_product`
- `update_product`
- `delete_product`

They raise `shopsystem.models.ApiError`, which carries an HTTP `status` and a
`message`.

Each application can be built and embedded through its `create_app`
function:

- `shopsystem.server.create_app(db_path, images_root)`
- `shopsystem.web.create_app(client, template_dir, upload_dir, image_base_url)`