"""
Security utility tests
"""

import re
import pytest
import jwt

from aimarker.utils.errors import InvalidTokenError, TokenExpiredError
from aimarker.utils.security import SecurityUtils, hash_password, verify_password


@pytest.fixture
def security():
    return SecurityUtils(jwt_secret="access-secret", refresh_secret="refresh-secret")


USER = {'id': 'a1b2', 'username': 'student1', 'role': 'user'}


class TestPasswords:
    @pytest.mark.asyncio
    async def test_hash_password(self):
        password = "test123"
        hashed = await hash_password(password)
        assert hashed != password
        assert await verify_password(password, hashed)
        assert not await verify_password("wrong-password", hashed)

    def test_verify_against_malformed_hash(self, security):
        assert security.verify_password("test123", "not-a-bcrypt-hash") is False


class TestTokens:
    def test_access_token_claims(self, security):
        token = security.generate_access_token(USER)
        payload = security.decode_access_token(token)
        assert payload['id'] == 'a1b2'
        assert payload['username'] == 'student1'
        assert payload['role'] == 'user'
        assert payload['type'] == 'access'
        assert payload['exp'] > payload['iat']

    def test_refresh_token_only_valid_with_refresh_secret(self, security):
        token = security.generate_refresh_token('a1b2')
        assert security.decode_refresh_token(token)['id'] == 'a1b2'

        with pytest.raises(InvalidTokenError):
            security.decode_access_token(token)

        other = SecurityUtils(jwt_secret="refresh-secret", refresh_secret="something-else")
        with pytest.raises(InvalidTokenError):
            other.decode_refresh_token(token)

    def test_access_token_rejected_as_refresh_token(self, security):
        shared = SecurityUtils(jwt_secret="same", refresh_secret="same")
        token = shared.generate_access_token(USER)
        with pytest.raises(InvalidTokenError):
            shared.decode_refresh_token(token)

    def test_expired_token(self, security):
        token = security.generate_access_token(USER, expires_in=-1)
        with pytest.raises(TokenExpiredError):
            security.decode_access_token(token)
        assert security.verify_token(token) is None

    def test_tampered_token(self, security):
        token = security.generate_access_token(USER)
        forged = jwt.encode(
            {**jwt.decode(token, options={"verify_signature": False}), 'role': 'admin'},
            "attacker-secret",
            algorithm="HS256"
        )
        assert security.verify_token(forged) is None
        assert security.verify_token("garbage") is None

    def test_submission_id_format(self, security):
        submission_id = security.generate_submission_id()
        assert re.fullmatch(r"sub_\d{13}_[0-9a-z]{9}", submission_id)
        assert submission_id != security.generate_submission_id()
