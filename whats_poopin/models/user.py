# whats_poopin/models/user.py
from dataclasses import dataclass
from typing import Optional, Dict, Any


@dataclass
class ExternalIdentity:
    """
    외부 ID 제공자(Google)가 알려준 사용자 정보.
    external_id 는 제공자의 불투명한 사용자 식별자(sub)입니다.
    """
    external_id: str
    email: str = ''
    first_name: str = ''
    last_name: str = ''
    image_url: str = ''

    @classmethod
    def from_google_user_info(cls, user_info: Dict[str, Any]) -> "ExternalIdentity":
        external_id = user_info.get('sub')
        if not external_id:
            raise ValueError("Google user info must contain 'sub'.")
        return cls(
            external_id=external_id,
            email=user_info.get('email') or '',
            first_name=user_info.get('given_name') or '',
            last_name=user_info.get('family_name') or '',
            image_url=user_info.get('picture') or '',
        )

    @classmethod
    def from_jwt_claims(cls, identity: str, claims: Dict[str, Any]) -> "ExternalIdentity":
        """액세스 토큰의 identity 와 추가 클레임으로부터 생성합니다."""
        return cls.from_google_user_info({**claims, 'sub': identity})

    def to_claims(self) -> Dict[str, str]:
        """액세스 토큰에 실을 추가 클레임."""
        return {
            'email': self.email,
            'given_name': self.first_name,
            'family_name': self.last_name,
            'picture': self.image_url,
        }


@dataclass
class User:
    """
    Firestore 'users' 컬렉션의 문서 구조 (내부 ID 레코드).
    user_id 가 외부 계정과 내부 데이터를 잇는 상관 식별자입니다.
    """
    user_id: str
    email: str
    created_at: int


@dataclass
class Profile:
    """Firestore 'profiles' 컬렉션의 문서 구조."""
    profile_id: str
    external_id: str
    internal_user_id: Optional[str]
    email: str = ''
    first_name: str = ''
    last_name: str = ''
    image_url: str = ''
    created_at: int = 0
    updated_at: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Profile":
        known = {k: data.get(k) for k in cls.__dataclass_fields__ if k in data}
        # 이전 버전에서 생성된 프로필은 internal_user_id 가 없을 수 있습니다.
        known.setdefault('internal_user_id', None)
        return cls(**known)
