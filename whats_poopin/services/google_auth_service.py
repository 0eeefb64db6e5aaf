# whats_poopin/services/google_auth_service.py

import logging
import requests
from google_auth_oauthlib.flow import Flow

GOOGLE_SCOPES = [
    "https://www.googleapis.com/auth/userinfo.profile",
    "https://www.googleapis.com/auth/userinfo.email",
    "openid"
]


class GoogleAuthService:
    """Google OAuth 2.0 통신을 담당하는 서비스 클래스입니다 (외부 ID 제공자)."""
    _user_info_url = "https://www.googleapis.com/oauth2/v3/userinfo"
    _request_timeout = 10

    @staticmethod
    def exchange_code_for_user_info(auth_code: str, client_secrets_path: str, redirect_uri: str) -> dict:
        """
        인증 코드를 Access Token으로 교환하고, 이를 사용해 사용자 정보를 가져옵니다.

        :return: Google userinfo 응답 (sub, email, given_name, family_name, picture ...)
        """
        try:
            flow = Flow.from_client_secrets_file(client_secrets_path, scopes=GOOGLE_SCOPES)
            flow.redirect_uri = redirect_uri

            # 인증 코드를 Access Token 으로 교환
            flow.fetch_token(code=auth_code)
            credentials = flow.credentials

            response = requests.get(
                GoogleAuthService._user_info_url,
                headers={"Authorization": f"Bearer {credentials.token}"},
                timeout=GoogleAuthService._request_timeout
            )
            response.raise_for_status()

            return response.json()

        except Exception as e:
            logging.error(f"Google OAuth failed: {e}", exc_info=True)
            raise
