import io

import pytest

from shopsystem.images import (
    DEFAULT_IMAGES_ROOT,
    resolve_image,
    save_upload,
    to_web_path,
)


def test_to_web_path_with_default_root():
    stored = "../databases/dbimages/game/main/game_0.jpg"
    assert to_web_path(stored, DEFAULT_IMAGES_ROOT) == "/images/game/main/game_0.jpg"


def test_to_web_path_with_trailing_slash_root():
    assert to_web_path("/srv/img/a/b.jpg", "/srv/img/") == "/images/a/b.jpg"


def test_to_web_path_outside_root_is_none():
    assert to_web_path("/elsewhere/a.jpg", DEFAULT_IMAGES_ROOT) is None


@pytest.fixture
def root(tmp_path):
    (tmp_path / "404.jpg").write_bytes(b"missing")
    (tmp_path / "other").mkdir()
    (tmp_path / "other" / "phone_0.jpg").write_bytes(b"phone")
    return tmp_path


def test_resolve_existing_image(root):
    assert resolve_image(root, "other/phone_0.jpg").read_bytes() == b"phone"


def test_resolve_missing_image_falls_back(root):
    assert resolve_image(root, "other/none.jpg") == root / "404.jpg"


def test_resolve_directory_falls_back(root):
    assert resolve_image(root, "other") == root / "404.jpg"


def test_resolve_outside_root_falls_back(root, tmp_path_factory):
    outside = tmp_path_factory.mktemp("outside") / "secret.jpg"
    outside.write_bytes(b"x")
    assert resolve_image(root, f"../{outside.parent.name}/secret.jpg") == root / "404.jpg"


def test_resolve_without_fallback_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        resolve_image(tmp_path, "nothing.jpg")


def test_save_upload_from_file_object(tmp_path):
    target = tmp_path / "game" / "main" / "game_0.jpg"
    written = save_upload(io.BytesIO(b"jpegdata"), target)
    assert target.read_bytes() == b"jpegdata"
    assert written == len(b"jpegdata")


def test_save_upload_from_chunks(tmp_path):
    target = tmp_path / "a.jpg"
    save_upload([b"ab", b"cd", b"ef"], target)
    assert target.read_bytes() == b"abcdef"


def test_save_upload_overwrites(tmp_path):
    target = tmp_path / "a.jpg"
    save_upload([b"first-version"], target)
    save_upload([b"new"], target)
    assert target.read_bytes() == b"new"