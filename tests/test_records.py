"""Tests for key encoding and the row transforms."""

import json

import pytest
from cryptography.fernet import Fernet

from launcher_bootstrap.database import keys
from launcher_bootstrap.transform.records import (
    PREFERENCE_TOGGLES,
    to_bool,
    transform_achievement,
    transform_game,
    transform_user,
    transform_user_preferences,
)
from launcher_bootstrap.utils.crypto import Crypto


@pytest.fixture
def crypto() -> Crypto:
    return Crypto(Fernet.generate_key())


class TestKeys:
    """Test the key layout."""

    def test_game_key(self):
        assert keys.game_key("steam", "1091500") == "steam:1091500"

    def test_sublevel_key_is_prefixed(self):
        assert keys.sublevel_key(keys.GAMES, "steam:1") == "!games!steam:1"
        assert keys.sublevel_key(keys.GAMES, "steam:1").startswith(keys.sublevel_prefix(keys.GAMES))


class TestToBool:

    @pytest.mark.parametrize("value,expected", [(1, True), (0, False), (None, False), (2, False)])
    def test_integer_truth_values(self, value, expected):
        assert to_bool(value) is expected


class TestTransformGame:

    def test_reshapes_row(self):
        key, value = transform_game({
            "id": 7,
            "objectID": "1091500",
            "shop": "steam",
            "title": "Cyberpunk 2077",
            "playTimeInMilliseconds": 42,
            "isDeleted": 1,
        })

        assert key == "steam:1091500"
        assert value["objectId"] == "1091500"
        assert "objectID" not in value
        assert "id" not in value
        assert value["playTimeInMilliseconds"] == 42
        assert value["isDeleted"] is True

    def test_not_deleted(self):
        _, value = transform_game({"objectID": "1", "shop": "steam", "isDeleted": 0})
        assert value["isDeleted"] is False


class TestTransformUserPreferences:

    def test_run_at_startup_becomes_boolean(self, crypto: Crypto):
        on = transform_user_preferences({"runAtStartup": 1}, crypto.encrypt)
        off = transform_user_preferences({"runAtStartup": 0}, crypto.encrypt)

        assert on["runAtStartup"] is True
        assert off["runAtStartup"] is False

    def test_all_toggles_normalized(self, crypto: Crypto):
        row = {name: 1 for name in PREFERENCE_TOGGLES}
        document = transform_user_preferences(row, crypto.encrypt)

        assert len(PREFERENCE_TOGGLES) == 9
        assert all(document[name] is True for name in PREFERENCE_TOGGLES)

    def test_credentials_encrypted(self, crypto: Crypto):
        document = transform_user_preferences(
            {"realDebridApiToken": "X", "allDebridApiKey": "Y"}, crypto.encrypt
        )

        assert document["realDebridApiToken"] != "X"
        assert crypto.decrypt(document["realDebridApiToken"]) == "X"
        assert crypto.decrypt(document["allDebridApiKey"]) == "Y"

    def test_null_credential_not_encrypted(self, crypto: Crypto):
        calls = []

        def encrypt(value):
            calls.append(value)
            return crypto.encrypt(value)

        document = transform_user_preferences(
            {"realDebridApiToken": None, "allDebridApiKey": "Y"}, encrypt
        )

        assert document["realDebridApiToken"] is None
        assert calls == ["Y"]

    def test_other_columns_kept(self, crypto: Crypto):
        document = transform_user_preferences(
            {"downloadsPath": "/games", "language": "en"}, crypto.encrypt
        )
        assert document["downloadsPath"] == "/games"
        assert document["language"] == "en"


class TestTransformAchievement:

    def test_decodes_json_columns(self):
        key, value = transform_achievement({
            "objectId": "1091500",
            "shop": "steam",
            "achievements": json.dumps([{"name": "A"}]),
            "unlockedAchievements": "[]",
        })

        assert key == "steam:1091500"
        assert value == {"achievements": [{"name": "A"}], "unlockedAchievements": []}

    def test_invalid_json_raises(self):
        with pytest.raises(json.JSONDecodeError):
            transform_achievement({
                "objectId": "1",
                "shop": "steam",
                "achievements": "{not json",
                "unlockedAchievements": "[]",
            })


class TestTransformUser:

    def test_splits_profile_and_auth(self, crypto: Crypto):
        user, auth = transform_user(
            {
                "userId": "u-1",
                "displayName": "Player One",
                "profileImageUrl": None,
                "backgroundImageUrl": None,
                "subscription": None,
                "accessToken": "access",
                "refreshToken": "refresh",
                "tokenExpirationTimestamp": 123,
            },
            crypto.encrypt,
        )

        assert user["id"] == "u-1"
        assert user["displayName"] == "Player One"
        assert "accessToken" not in user
        assert crypto.decrypt(auth["accessToken"]) == "access"
        assert crypto.decrypt(auth["refreshToken"]) == "refresh"
        assert auth["tokenExpirationTimestamp"] == 123
