# tests/test_telegram_init_data.py
"""
Тесты проверки подписи Telegram initData.
"""

import json
import time
from urllib.parse import urlencode

import pytest

from app.core.telegram import (
    InitDataError,
    build_data_check_string,
    parse_init_data,
    sign_init_data,
    verify_init_data,
)
from tests.conftest import BOT_TOKEN, make_init_data


class TestDataCheckString:
    """Тесты строки для подписи."""

    def test_sorted_without_hash(self):
        fields = {"user": "{}", "auth_date": "1", "hash": "abc", "query_id": "q"}

        assert build_data_check_string(fields) == "auth_date=1\nquery_id=q\nuser={}"

    def test_signature_is_deterministic(self):
        fields = {"auth_date": "1700000000", "user": '{"id":1}'}

        assert sign_init_data(fields, BOT_TOKEN) == sign_init_data(dict(fields), BOT_TOKEN)
        assert sign_init_data(fields, BOT_TOKEN) != sign_init_data(fields, "other:token")


class TestVerifyInitData:
    """Тесты verify_init_data."""

    def test_valid_init_data(self):
        init_data = make_init_data(user_id=42, username="alice")

        data = verify_init_data(init_data, BOT_TOKEN)

        assert data.user.id == 42
        assert data.user.username == "alice"
        assert data.query_id == "AAHdF6IQAAAAAN0XohDhrOrc"

    def test_wrong_bot_token(self):
        init_data = make_init_data(bot_token="999:OTHER")

        with pytest.raises(InitDataError):
            verify_init_data(init_data, BOT_TOKEN)

    def test_tampered_user(self):
        init_data = make_init_data(user_id=42)
        tampered = init_data.replace("42", "43")

        with pytest.raises(InitDataError):
            verify_init_data(tampered, BOT_TOKEN)

    def test_missing_hash(self):
        init_data = urlencode({"auth_date": str(int(time.time())), "user": '{"id":1}'})

        with pytest.raises(InitDataError, match="hash"):
            verify_init_data(init_data, BOT_TOKEN)

    def test_expired(self):
        init_data = make_init_data(auth_date=int(time.time()) - 7200)

        with pytest.raises(InitDataError, match="too old"):
            verify_init_data(init_data, BOT_TOKEN, max_age_seconds=3600)

    def test_custom_clock(self):
        init_data = make_init_data(auth_date=1_700_000_000)

        data = verify_init_data(init_data, BOT_TOKEN, now=1_700_000_100)

        assert data.auth_date == 1_700_000_000

    def test_empty_input(self):
        with pytest.raises(InitDataError):
            verify_init_data("", BOT_TOKEN)
        with pytest.raises(InitDataError):
            verify_init_data(make_init_data(), "")

    def test_invalid_user_payload(self):
        fields = {"auth_date": str(int(time.time())), "user": "not-json"}
        fields["hash"] = sign_init_data(fields, BOT_TOKEN)

        with pytest.raises(InitDataError, match="user payload"):
            verify_init_data(urlencode(fields), BOT_TOKEN)

    def test_without_user(self):
        fields = {"auth_date": str(int(time.time())), "chat_type": "private"}
        fields["hash"] = sign_init_data(fields, BOT_TOKEN)

        data = verify_init_data(urlencode(fields), BOT_TOKEN)

        assert data.user is None
        assert data.chat_type == "private"


class TestParseInitData:
    """Тесты разбора без проверки подписи."""

    def test_parse_unsigned(self):
        init_data = urlencode(
            {"auth_date": "1", "user": json.dumps({"id": 7, "first_name": "Bob"}), "hash": "x"}
        )

        data = parse_init_data(init_data)

        assert data.user.id == 7
        assert data.hash == "x"

    def test_parse_garbage(self):
        assert parse_init_data("user=%7Bbroken") is None
