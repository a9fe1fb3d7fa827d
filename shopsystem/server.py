"""The shop API server: product, product-type and image endpoints over SQLite."""

from __future__ import annotations

import argparse
from contextlib import closing

from flask import Flask, Response, abort, g, send_file

from . import product_types, products
from .db import DEFAULT_DB_PATH, connect, create_schema
from .images import DEFAULT_IMAGES_ROOT, resolve_image
from .models import ApiError

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 2001


def create_app(db_path=DEFAULT_DB_PATH, images_root=DEFAULT_IMAGES_ROOT) -> Flask:
    """Build the API application backed by the database at ``db_path``."""
    app = Flask(__name__)

    with closing(connect(db_path)) as conn:
        create_schema(conn)

    def get_connection():
        if "shop_db" not in g:
            g.shop_db = connect(db_path)
        return g.shop_db

    @app.teardown_appcontext
    def _close_connection(_exc):
        conn = g.pop("shop_db", None)
        if conn is not None:
            conn.close()

    @app.errorhandler(ApiError)
    def _handle_api_error(error: ApiError):
        return Response(error.message, status=error.status, mimetype="text/plain")

    @app.get("/images/<path:file>")
    def get_image(file: str):
        try:
            path = resolve_image(images_root, file)
        except FileNotFoundError:
            abort(404)
        return send_file(path.resolve())

    app.register_blueprint(product_types.create_blueprint(get_connection, images_root))
    app.register_blueprint(products.create_blueprint(get_connection, images_root))
    return app


def main(argv=None) -> None:
    """Run the API server."""
    parser = argparse.ArgumentParser(description="Run the shop API server.")
    parser.add_argument("--db", default=DEFAULT_DB_PATH, help="SQLite database file")
    parser.add_argument("--images", default=DEFAULT_IMAGES_ROOT, help="image directory")
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    args = parser.parse_args(argv)

    app = create_app(args.db, args.images)
    app.run(host=args.host, port=args.port)


if __name__ == "__main__":
    main()