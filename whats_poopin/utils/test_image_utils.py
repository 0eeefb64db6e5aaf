# whats_poopin/utils/test_image_utils.py
"""
이미지 정규화 테스트

사용법: python -m pytest whats_poopin/utils/test_image_utils.py -v
"""

import io

import pytest
from PIL import Image

from whats_poopin.utils.image_utils import normalize_image


def _encode(image, format='PNG', **kwargs):
    buffer = io.BytesIO()
    image.save(buffer, format=format, **kwargs)
    return buffer.getvalue()


def test_large_image_is_shrunk_keeping_ratio():
    data, size = normalize_image(_encode(Image.new('RGB', (900, 2400), 'brown')), max_dimension=800)

    assert size == (300, 800)
    with Image.open(io.BytesIO(data)) as image:
        assert image.format == 'WEBP'
        assert image.size == (300, 800)


def test_palette_and_alpha_images_are_converted():
    _, size = normalize_image(_encode(Image.new('P', (64, 64))))
    assert size == (64, 64)

    data, _ = normalize_image(_encode(Image.new('LA', (64, 64))))
    with Image.open(io.BytesIO(data)) as image:
        assert image.mode == 'RGBA'


def test_exif_orientation_is_applied():
    image = Image.new('RGB', (400, 200), 'brown')
    exif = image.getexif()
    exif[0x0112] = 6  # 90도 회전
    raw = _encode(image, format='JPEG', exif=exif.tobytes())

    _, size = normalize_image(raw)

    assert size == (200, 400)


def test_unreadable_bytes_raise_value_error():
    with pytest.raises(ValueError):
        normalize_image(b'not an image at all')
