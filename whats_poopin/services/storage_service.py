# whats_poopin/services/storage_service.py
import uuid
import logging
from typing import Dict

from flask import Flask
from firebase_admin import storage

from whats_poopin.utils.image_utils import normalize_image, WEBP_CONTENT_TYPE


class StorageService:
    """
    Firebase Storage 관련 로직을 담당하는 서비스 클래스입니다.
    분석용 이미지를 정규화(축소 + WebP 변환)한 뒤 업로드하고 공개 URL 을 돌려줍니다.
    """

    def __init__(self, bucket=None, folder: str = "poop-analysis", max_dimension: int = 800, quality: int = 80):
        """
        :param bucket: 미리 생성된 Storage 버킷 객체. None 이면 init_app 에서 설정합니다.
        """
        self.bucket = bucket
        self.folder = folder
        self.max_dimension = max_dimension
        self.quality = quality

    def init_app(self, app: Flask):
        """
        Flask 앱 초기화 과정에서 호출되어 Storage 버킷과 업로드 설정을 적용합니다.

        :param app: Flask 애플리케이션 객체
        """
        self.folder = app.config.get('UPLOAD_FOLDER', self.folder)
        self.max_dimension = app.config.get('UPLOAD_MAX_DIMENSION', self.max_dimension)
        self.quality = app.config.get('UPLOAD_WEBP_QUALITY', self.quality)

        if self.bucket is None:
            bucket_name = app.config.get('FIREBASE_STORAGE_BUCKET')
            if not bucket_name:
                raise ValueError("FIREBASE_STORAGE_BUCKET must be configured.")
            self.bucket = storage.bucket(bucket_name)
        logging.info("StorageService: Firebase Storage initialized")

    @property
    def is_configured(self) -> bool:
        return self.bucket is not None

    def upload_analysis_image(self, user_id: str, image_bytes: bytes) -> Dict[str, str]:
        """
        분석할 이미지를 정규화하여 업로드하고 공개 URL 을 반환합니다.

        :param user_id: 업로드한 사용자의 ID (저장 경로에 사용)
        :param image_bytes: 원본 이미지 바이트
        :return: {"url": 공개 URL, "public_id": 저장 경로}
        :raises ValueError: 이미지로 읽을 수 없는 파일
        """
        if not self.bucket:
            raise RuntimeError("StorageService is not initialized. Call init_app first.")

        normalized, (width, height) = normalize_image(
            image_bytes, max_dimension=self.max_dimension, quality=self.quality
        )

        destination_blob_name = f"{self.folder}/{user_id}/{uuid.uuid4()}.webp"
        blob = self.bucket.blob(destination_blob_name)
        blob.upload_from_string(normalized, content_type=WEBP_CONTENT_TYPE)
        blob.make_public()

        logging.info(f"Uploaded analysis image {destination_blob_name} ({width}x{height})")
        return {"url": blob.public_url, "public_id": destination_blob_name}
