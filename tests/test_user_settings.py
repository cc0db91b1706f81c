import pytest

import config
from storage.user_settings import UserSettings, UserSettingsStorage


@pytest.mark.asyncio
async def test_defaults_for_new_user():
    storage = UserSettingsStorage()
    await storage.connect()

    settings = await storage.get_settings(42)

    assert settings.user_id == 42
    assert settings.default_wallet_type is None
    assert settings.default_auto_cancel == config.DEFAULT_AUTO_CANCEL_MINUTES
    assert settings.default_min_limit == config.DEFAULT_MIN_LIMIT_USD


@pytest.mark.asyncio
async def test_update_persists_all_changes():
    storage = UserSettingsStorage()
    updated = await storage.update(42, default_wallet_type="SPOT", default_terms="Only SEPA")

    settings = await storage.get_settings(42)
    assert settings == updated
    assert settings.default_wallet_type == "SPOT"
    assert settings.default_terms == "Only SEPA"


@pytest.mark.asyncio
async def test_update_with_unknown_field_writes_nothing():
    storage = UserSettingsStorage()

    with pytest.raises(ValueError, match="legacy_field"):
        await storage.update(42, default_terms="Only SEPA", legacy_field=True)

    assert (await storage.get_settings(42)).default_terms == ""


def test_from_dict_ignores_unknown_fields():
    settings = UserSettings.from_dict({"user_id": 1, "default_country": "US", "legacy_field": True})
    assert settings.default_country == "US"
