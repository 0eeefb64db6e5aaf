# whats_poopin/utils/image_utils.py
import io
import logging
from typing import Tuple

from PIL import Image, ImageOps, UnidentifiedImageError

WEBP_CONTENT_TYPE = "image/webp"


def normalize_image(image_bytes: bytes, max_dimension: int = 800, quality: int = 80) -> Tuple[bytes, Tuple[int, int]]:
    """
    업로드된 이미지를 분석용으로 정규화합니다.

    - EXIF 회전 정보를 반영합니다.
    - 가로/세로 중 긴 변이 max_dimension 을 넘지 않도록 비율을 유지하며 축소합니다 (확대하지 않음).
    - WebP 포맷으로 다시 인코딩합니다.

    :param image_bytes: 원본 이미지 바이트
    :param max_dimension: 허용되는 최대 변 길이 (px)
    :param quality: WebP 인코딩 품질 (1-100)
    :return: (WebP 바이트, (가로, 세로))
    :raises ValueError: 이미지로 읽을 수 없는 데이터인 경우
    """
    try:
        image = Image.open(io.BytesIO(image_bytes))
        image.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ValueError(f"Unsupported image file: {e}")

    image = ImageOps.exif_transpose(image)

    if image.mode not in ("RGB", "RGBA"):
        image = image.convert("RGBA" if "A" in image.getbands() else "RGB")

    image.thumbnail((max_dimension, max_dimension))

    output = io.BytesIO()
    image.save(output, format="WEBP", quality=quality)
    logging.info(f"Image normalized to {image.size[0]}x{image.size[1]} WebP ({output.tell()} bytes)")
    return output.getvalue(), image.size
