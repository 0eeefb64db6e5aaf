# whats_poopin/api/users/services.py
import uuid
import logging
from dataclasses import asdict
from typing import Optional, Tuple

from whats_poopin.models.user import ExternalIdentity, User, Profile
from whats_poopin.utils.datetime_utils import DateTimeUtils


class IdentitySyncService:
    """
    외부 ID 제공자의 사용자 정보를 Firestore 에 반영하는 서비스.

    - 처음 보는 외부 ID: 상관 식별자(uuid4)를 생성하고 'users' 와 'profiles' 문서를 만듭니다.
    - 이미 본 외부 ID: 변경 가능한 프로필 필드만 갱신하고 상관 식별자는 유지합니다.
    - 프로필은 있지만 상관 식별자가 없는 경우: 새로 발급하여 채워 넣습니다.

    같은 사용자에 대한 동시 동기화는 잠그지 않습니다 (멱등 upsert).
    """

    def __init__(self, db):
        """
        :param db: Firestore 클라이언트
        """
        self.users_ref = db.collection('users')
        self.profiles_ref = db.collection('profiles')

    def find_profile(self, external_id: str) -> Optional[Profile]:
        query = self.profiles_ref.where('external_id', '==', external_id).limit(1).stream()
        doc = next(iter(query), None)
        if doc is None:
            return None
        return Profile.from_dict({**doc.to_dict(), 'profile_id': doc.id})

    def sync_user(self, identity: ExternalIdentity) -> Tuple[Profile, bool]:
        """
        외부 ID 를 upsert 합니다.

        :return: (동기화된 Profile, 새로 생성되었는지 여부)
        """
        now_ms = DateTimeUtils.now_ms()
        profile = self.find_profile(identity.external_id)

        if profile is None:
            internal_user_id = self._create_identity_record(identity.email, now_ms)
            profile = Profile(
                profile_id=str(uuid.uuid4()),
                external_id=identity.external_id,
                internal_user_id=internal_user_id,
                email=identity.email,
                first_name=identity.first_name,
                last_name=identity.last_name,
                image_url=identity.image_url,
                created_at=now_ms,
                updated_at=now_ms,
            )
            self.profiles_ref.document(profile.profile_id).set(asdict(profile))
            logging.info(f"Created new profile for external user {identity.external_id} (internal id: {internal_user_id})")
            return profile, True

        if not profile.internal_user_id:
            profile.internal_user_id = self._create_identity_record(identity.email, now_ms)
            logging.info(f"Backfilled missing internal id for external user {identity.external_id}: {profile.internal_user_id}")

        profile.email = identity.email
        profile.first_name = identity.first_name
        profile.last_name = identity.last_name
        profile.image_url = identity.image_url
        profile.updated_at = now_ms

        self.profiles_ref.document(profile.profile_id).update({
            'internal_user_id': profile.internal_user_id,
            'email': profile.email,
            'first_name': profile.first_name,
            'last_name': profile.last_name,
            'image_url': profile.image_url,
            'updated_at': profile.updated_at,
        })
        logging.info(f"Updated existing profile for external user {identity.external_id}")
        return profile, False

    def _create_identity_record(self, email: str, now_ms: int) -> str:
        """'users' 컬렉션에 내부 ID 레코드를 만들고 상관 식별자를 반환합니다."""
        user = User(user_id=str(uuid.uuid4()), email=email, created_at=now_ms)
        self.users_ref.document(user.user_id).set(asdict(user))
        return user.user_id
