# conftest.py
"""
공용 pytest 픽스처.

Firestore / Storage 는 메모리 기반 대역으로, OpenAI 클라이언트는 MagicMock 으로 대체합니다.
앱은 create_app('testing', services=...) 로 생성하므로 외부 서비스에 연결하지 않습니다.

사용법: python -m pytest -v
"""
import copy
import json
import uuid
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from flask_jwt_extended import create_access_token

from whats_poopin import create_app
from whats_poopin.services.openai_service import OpenAIService
from whats_poopin.services.storage_service import StorageService
from whats_poopin.api.analyses.services import AnalysisService, AnalysisRepository
from whats_poopin.api.users.services import IdentitySyncService


# =====================================================================================
# Firestore 메모리 대역
# =====================================================================================
class FakeSnapshot:
    def __init__(self, doc_id, data):
        self.id = doc_id
        self._data = data

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return copy.deepcopy(self._data) if self._data is not None else None


class FakeDocumentRef:
    def __init__(self, collection, doc_id):
        self.collection = collection
        self.id = doc_id

    def set(self, data):
        self.collection.docs[self.id] = copy.deepcopy(data)

    def update(self, data):
        if self.id not in self.collection.docs:
            raise KeyError(f"No document to update: {self.id}")
        self.collection.docs[self.id].update(copy.deepcopy(data))

    def get(self):
        return FakeSnapshot(self.id, self.collection.docs.get(self.id))


_OPERATORS = {
    '==': lambda a, b: a == b,
    '>=': lambda a, b: a is not None and a >= b,
    '<=': lambda a, b: a is not None and a <= b,
    '>': lambda a, b: a is not None and a > b,
    '<': lambda a, b: a is not None and a < b,
}


class FakeQuery:
    def __init__(self, collection, filters=(), order=None, limit_count=None):
        self._collection = collection
        self._filters = tuple(filters)
        self._order = order
        self._limit = limit_count

    def where(self, field, op, value):
        return FakeQuery(self._collection, self._filters + ((field, op, value),), self._order, self._limit)

    def order_by(self, field, direction='ASCENDING'):
        return FakeQuery(self._collection, self._filters, (field, direction), self._limit)

    def limit(self, count):
        return FakeQuery(self._collection, self._filters, self._order, count)

    def stream(self):
        items = [
            (doc_id, data) for doc_id, data in self._collection.docs.items()
            if all(_OPERATORS[op](data.get(field), value) for field, op, value in self._filters)
        ]
        if self._order:
            field, direction = self._order
            items.sort(key=lambda item: item[1].get(field), reverse=(direction == 'DESCENDING'))
        if self._limit is not None:
            items = items[:self._limit]
        return iter([FakeSnapshot(doc_id, copy.deepcopy(data)) for doc_id, data in items])


class FakeCollection(FakeQuery):
    def __init__(self, name):
        self.name = name
        self.docs = {}
        super().__init__(self)

    def document(self, doc_id=None):
        return FakeDocumentRef(self, doc_id or uuid.uuid4().hex)


class FakeFirestore:
    def __init__(self):
        self.collections = {}

    def collection(self, name):
        return self.collections.setdefault(name, FakeCollection(name))


# =====================================================================================
# Storage 메모리 대역
# =====================================================================================
class FakeBlob:
    def __init__(self, bucket, name):
        self.bucket = bucket
        self.name = name
        self.is_public = False

    def upload_from_string(self, data, content_type=None):
        self.bucket.files[self.name] = {"data": data, "content_type": content_type}

    def make_public(self):
        self.is_public = True

    @property
    def public_url(self):
        return f"https://storage.googleapis.com/{self.bucket.name}/{self.name}"


class FakeBucket:
    def __init__(self, name='test-bucket'):
        self.name = name
        self.files = {}

    def blob(self, name):
        return FakeBlob(self, name)


# =====================================================================================
# OpenAI 응답 헬퍼
# =====================================================================================
def make_completion(content, finish_reason='stop', refusal=None):
    """chat.completions.create 가 돌려주는 응답과 같은 모양의 객체를 만듭니다."""
    message = SimpleNamespace(content=content, refusal=refusal)
    return SimpleNamespace(choices=[SimpleNamespace(message=message, finish_reason=finish_reason)])


@pytest.fixture
def completion():
    return make_completion


@pytest.fixture
def valid_reply():
    return {
        "rating": 73.6,
        "healthMetrics": {
            "color": 81.2,
            "consistency": 68.4,
            "shape": 71.9,
            "frequency": 66.3,
            "volume": 74.1
        },
        "summary": "Well-formed sample with a healthy brown color and slightly firm texture.",
        "recommendations": ["Increase water intake", "Add more fiber to meals"],
        "healthConcerns": ["Mild dehydration indicators"],
        "dietaryChanges": ["Add leafy greens"],
        "urgencyLevel": "low",
        "detailedBreakdown": {
            "colorAnalysis": "Medium brown, uniform.",
            "consistencyAnalysis": "Bristol type 3.",
            "shapeAnalysis": "Sausage shaped with cracks.",
            "overallHealth": "Generally healthy digestion."
        }
    }


@pytest.fixture
def openai_client(valid_reply):
    client = MagicMock()
    client.chat.completions.create.return_value = make_completion(json.dumps(valid_reply))
    return client


@pytest.fixture
def firestore_db():
    return FakeFirestore()


@pytest.fixture
def bucket():
    return FakeBucket()


@pytest.fixture
def services(firestore_db, bucket, openai_client):
    openai_service = OpenAIService(client=openai_client)
    return {
        'storage': StorageService(bucket=bucket),
        'openai': openai_service,
        'analyses': AnalysisService(openai_service=openai_service, repository=AnalysisRepository(firestore_db)),
        'identity_sync': IdentitySyncService(firestore_db),
    }


@pytest.fixture
def app(services):
    return create_app('testing', services=services)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_auth_headers(app):
    """지정한 외부 사용자 ID 로 발급한 액세스 토큰 헤더를 만듭니다."""
    def _make(user_id='google-user-1', **claims):
        claims = {
            'email': 'tester@example.com',
            'given_name': 'Test',
            'family_name': 'User',
            'picture': 'https://example.com/avatar.png',
            **claims
        }
        with app.app_context():
            token = create_access_token(identity=user_id, additional_claims=claims)
        return {'Authorization': f'Bearer {token}'}
    return _make


@pytest.fixture
def auth_headers(make_auth_headers):
    return make_auth_headers()
