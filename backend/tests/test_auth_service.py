from datetime import UTC, datetime, timedelta

import jwt
import pytest

from api.core.config import Settings
from api.services.auth_service import AuthService

SECRET = "unit-test-secret-that-is-long-enough-for-hs256"


class TestAuthService:
    def test_round_trip(self):
        auth = AuthService(SECRET)
        payload = auth.verify_token(auth.create_access_token("user-1", email="a@b.test"))
        assert payload["sub"] == "user-1"
        assert payload["email"] == "a@b.test"

    def test_wrong_audience_is_rejected(self):
        token = AuthService(SECRET, audience="anon").create_access_token("user-1")
        assert AuthService(SECRET).verify_token(token) is None

    def test_expired_token_is_rejected(self):
        token = jwt.encode(
            {
                "sub": "user-1",
                "aud": "authenticated",
                "exp": datetime.now(UTC) - timedelta(minutes=1),
            },
            SECRET,
            algorithm="HS256",
        )
        assert AuthService(SECRET).verify_token(token) is None

    def test_token_without_sub_is_rejected(self):
        token = jwt.encode({"aud": "authenticated"}, SECRET, algorithm="HS256")
        assert AuthService(SECRET).verify_token(token) is None

    def test_empty_secret(self):
        with pytest.raises(ValueError):
            AuthService("")


class TestSettings:
    def test_defaults(self):
        settings = Settings(database_url="postgresql://x", jwt_secret_key="s", _env_file=None)
        assert settings.whatsapp_api_endpoint == "https://ustazai.my/"
        assert settings.automation_timezone == "Asia/Kuala_Lumpur"
        assert settings.automation_message_delay == 1.0
        assert settings.bulk_message_delay == 0.5

    def test_endpoint_gets_trailing_slash(self):
        settings = Settings(
            database_url="postgresql://x",
            jwt_secret_key="s",
            whatsapp_api_endpoint="https://gw.example",
            _env_file=None,
        )
        assert settings.whatsapp_api_endpoint == "https://gw.example/"

    @pytest.mark.parametrize("environment", [None, "development", "production"])
    def test_cron_test_mode_is_off_unless_enabled(self, monkeypatch, environment):
        monkeypatch.delenv("ALLOW_CRON_TEST_MODE", raising=False)
        monkeypatch.delenv("ENVIRONMENT", raising=False)
        if environment:
            monkeypatch.setenv("ENVIRONMENT", environment)
        settings = Settings(database_url="postgresql://x", jwt_secret_key="s", _env_file=None)
        assert settings.allow_cron_test_mode is False

    def test_cron_test_mode_can_be_enabled(self, monkeypatch):
        monkeypatch.setenv("ALLOW_CRON_TEST_MODE", "true")
        settings = Settings(database_url="postgresql://x", jwt_secret_key="s", _env_file=None)
        assert settings.allow_cron_test_mode is True

    def test_invalid_log_level_falls_back(self):
        settings = Settings(
            database_url="postgresql://x", jwt_secret_key="s", log_level="chatty", _env_file=None
        )
        assert settings.log_level == "INFO"
