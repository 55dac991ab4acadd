import runpy
import warnings

import pytest

from app.core.errors import ImageConversionError, ImageTooLargeError
from app.utils.helpers import calculate_total_pages, convert_image_to_bytes, image_extension, validate_images

ALLOWED = ["image/jpeg", "image/png", "image/webp"]


class FakeImage:
    def __init__(self, data=b"bytes", content_type="image/jpeg", size=None, error=None):
        self.filename = "poster.jpg"
        self.data = data
        self.content_type = content_type
        self.size = len(data) if size is None else size
        self.error = error

    async def read(self, size=-1):
        if self.error:
            raise self.error
        return self.data


@pytest.mark.parametrize("total, limit, expected", [(0, 10, 0), (1, 10, 1), (10, 10, 1), (11, 10, 2)])
def test_calculate_total_pages(total, limit, expected):
    assert calculate_total_pages(total, limit) == expected


def test_calculate_total_pages_rejects_bad_limit():
    with pytest.raises(ValueError):
        calculate_total_pages(10, 0)


async def test_convert_image_to_bytes():
    assert await convert_image_to_bytes(FakeImage(data=b"\x89PNG")) == b"\x89PNG"


async def test_convert_empty_image_fails():
    with pytest.raises(ImageConversionError):
        await convert_image_to_bytes(FakeImage(data=b""))


async def test_convert_unreadable_image_fails():
    with pytest.raises(ImageConversionError):
        await convert_image_to_bytes(FakeImage(error=OSError("disk gone")))


def test_validate_images_accepts_allowed_types():
    images = [FakeImage(content_type="image/jpeg"), FakeImage(content_type="IMAGE/PNG")]
    assert validate_images(images, 5, 1024, ALLOWED) == []


def test_validate_images_reports_each_problem():
    images = [FakeImage(content_type="image/gif"), FakeImage(size=2048), FakeImage(content_type=None)]

    errors = validate_images(images, 2, 1024, ALLOWED)

    assert [e["field"] for e in errors] == ["images", "images[0]", "images[1]", "images[2]"]


def test_image_extension():
    assert image_extension("image/png") == "png"
    assert image_extension("image/webp") == "webp"
    assert image_extension(None) == "jpg"


async def test_convert_checks_bytes_read_when_size_is_not_declared():
    image = FakeImage(data=b"x" * 2048)
    image.size = None

    assert validate_images([image], 5, 1024, ALLOWED) == []
    with pytest.raises(ImageTooLargeError):
        await convert_image_to_bytes(image, max_size_bytes=1024)


def test_error_module_uses_no_deprecated_status_names():
    with warnings.catch_warnings():
        warnings.simplefilter("error", DeprecationWarning)
        namespace = runpy.run_module("app.core.errors")

    assert namespace["ImageValidationError"].status_code == 422
