from datetime import time, timedelta, timezone

import pytest
from pydantic import ValidationError

from conftest import user_ctx
from festguide.schemas.preferences import PreferencesUpdate
from festguide.services.preference_store import Preferences


async def test_defaults_when_never_saved(services):
    prefs = await services.preferences.get_preferences(42)
    assert prefs == Preferences.defaults()
    assert prefs.push_enabled
    assert prefs.reminder_minutes_before == 30
    assert prefs.quiet_hours_start is None
    assert prefs.timezone_id == "UTC"


async def test_first_update_starts_from_defaults(services):
    prefs = await services.preferences.update_preferences(user_ctx(1), 1, {"push_enabled": False})

    assert not prefs.push_enabled
    assert prefs.email_enabled
    assert prefs.reminder_minutes_before == 30
    assert await services.preferences.get_preferences(1) == prefs


async def test_partial_update_keeps_other_fields(services):
    await services.preferences.update_preferences(
        user_ctx(1), 1,
        {"quiet_hours_start": time(23, 0), "quiet_hours_end": time(6, 0), "timezone_id": "Europe/Berlin"},
    )
    prefs = await services.preferences.update_preferences(user_ctx(1), 1, {"reminder_minutes_before": 15})

    assert prefs.reminder_minutes_before == 15
    assert prefs.quiet_hours_start == time(23, 0)
    assert prefs.quiet_hours_end == time(6, 0)
    assert prefs.timezone_id == "Europe/Berlin"


async def test_quiet_hours_can_be_cleared(services):
    await services.preferences.update_preferences(
        user_ctx(1), 1, {"quiet_hours_start": time(22, 0), "quiet_hours_end": time(7, 0)},
    )
    prefs = await services.preferences.update_preferences(
        user_ctx(1), 1, {"quiet_hours_start": None, "quiet_hours_end": None},
    )
    assert prefs.quiet_hours_start is None
    assert prefs.quiet_hours_end is None


async def test_unknown_field_rejected(services):
    with pytest.raises(ValueError, match="colour"):
        await services.preferences.update_preferences(user_ctx(1), 1, {"colour": "blue"})


class TestPreferencesUpdate:
    def test_only_sent_fields_become_changes(self):
        update = PreferencesUpdate(push_enabled=False)
        assert update.changes() == {"push_enabled": False}

    def test_null_does_not_reset_regular_fields(self):
        update = PreferencesUpdate.model_validate({"email_enabled": None, "reminders_enabled": True})
        assert update.changes() == {"reminders_enabled": True}

    def test_clearing_quiet_hours_is_a_change(self):
        update = PreferencesUpdate.model_validate({"quiet_hours_start": None, "quiet_hours_end": None})
        assert update.changes() == {"quiet_hours_start": None, "quiet_hours_end": None}

    @pytest.mark.parametrize("minutes", [4, 121])
    def test_reminder_minutes_out_of_range(self, minutes):
        with pytest.raises(ValidationError):
            PreferencesUpdate(reminder_minutes_before=minutes)

    @pytest.mark.parametrize("minutes", [5, 120])
    def test_reminder_minutes_bounds(self, minutes):
        assert PreferencesUpdate(reminder_minutes_before=minutes).reminder_minutes_before == minutes

    def test_quiet_hours_require_both(self):
        with pytest.raises(ValidationError, match="Both quiet hours"):
            PreferencesUpdate(quiet_hours_start=time(22, 0))
        with pytest.raises(ValidationError, match="Both quiet hours"):
            PreferencesUpdate.model_validate({"quiet_hours_start": "22:00", "quiet_hours_end": None})

    def test_quiet_hours_must_differ(self):
        with pytest.raises(ValidationError, match="must differ"):
            PreferencesUpdate(quiet_hours_start=time(22, 0), quiet_hours_end=time(22, 0))

    def test_unknown_timezone_rejected(self):
        with pytest.raises(ValidationError, match="Unknown timezone"):
            PreferencesUpdate(timezone_id="Nowhere/Special")


@pytest.mark.parametrize("changes", [
    {"quiet_hours_start": time(22, 0)},
    {"quiet_hours_end": time(6, 0)},
    {"quiet_hours_start": time(22, 0), "quiet_hours_end": None},
    {"quiet_hours_start": time(22, 0), "quiet_hours_end": time(22, 0)},
    {"quiet_hours_start": time(23, 0, tzinfo=timezone(timedelta(hours=2))), "quiet_hours_end": time(6, 0)},
])
async def test_store_rejects_invalid_quiet_hours(services, changes):
    with pytest.raises(ValueError, match="[Qq]uiet hours"):
        await services.preferences.update_preferences(user_ctx(1), 1, changes)

    assert await services.preferences.get_preferences(1) == Preferences.defaults()


def test_offset_aware_quiet_hours_rejected():
    with pytest.raises(ValidationError, match="without a UTC offset"):
        PreferencesUpdate.model_validate({"quiet_hours_start": "23:00:00+02:00", "quiet_hours_end": "06:00:00"})
