from models import ProgressRecord, XPLog
from services.core_services import StreakService


def _record(db, user_id="u1"):
    return db.session.get(ProgressRecord, user_id)


def _login_on(days, day, user_id="u1"):
    return [StreakService.handle_daily_login(user_id, today=day(n)) for n in days]


def test_first_login_starts_streak(db, day):
    result = StreakService.handle_daily_login("u1", today=day(1))

    assert result["already_processed"] is False
    assert result["xp_awarded"] == 5
    assert result["streak"] == {"current": 1, "longest": 1, "last_active_date": "2024-03-01"}
    assert _record(db).last_login_date == day(1)


def test_second_login_same_day_is_a_no_op(db, day):
    StreakService.handle_daily_login("u1", today=day(1))
    again = StreakService.handle_daily_login("u1", today=day(1))

    assert again["already_processed"] is True
    assert again["xp_awarded"] == 0
    assert _record(db).experience == 5
    assert XPLog.query.filter_by(user_id="u1").count() == 1


def test_third_day_awards_streak_bonus_and_badge(db, day):
    results = _login_on([1, 2, 3], day)

    assert [r["xp_awarded"] for r in results] == [5, 5, 20]
    assert results[2]["badges_unlocked"] == ["streak_starter"]
    assert results[2]["streak"]["current"] == 3


def test_seventh_day_awards_week_bonus(db, day):
    results = _login_on(range(1, 8), day)

    assert results[6]["xp_awarded"] == 35
    assert results[6]["badges_unlocked"] == ["week_warrior"]
    assert _record(db).experience == 7 * 5 + 15 + 30


def test_gap_resets_current_but_keeps_longest(db, day):
    _login_on([1, 2], day)
    result = StreakService.handle_daily_login("u1", today=day(4))

    assert result["streak"]["current"] == 1
    assert result["streak"]["longest"] == 2


def test_streak_bonus_is_awarded_again_after_reset(db, day):
    first_run = _login_on([1, 2, 3], day)
    second_run = _login_on([10, 11, 12], day)

    assert first_run[2]["xp_awarded"] == 20
    assert second_run[2]["xp_awarded"] == 20
    assert second_run[2]["badges_unlocked"] == []


def test_badges_survive_a_broken_streak(db, day):
    _login_on([1, 2, 3], day)
    StreakService.handle_daily_login("u1", today=day(20))

    stats = _record(db).to_dict()
    assert stats["streak"]["current"] == 1
    assert stats["badges"] == {"streak_starter": True}


def test_longest_never_below_current(db, day):
    for n in [1, 2, 3, 5, 6, 7, 8, 9, 15, 16, 17, 18]:
        result = StreakService.handle_daily_login("u1", today=day(n))
        assert result["streak"]["longest"] >= result["streak"]["current"]

    record = _record(db)
    assert record.streak_current == 4
    assert record.streak_longest == 5


def test_same_day_login_does_not_write_the_record(db, day):
    StreakService.handle_daily_login("u1", today=day(1))
    version = _record(db).version

    StreakService.handle_daily_login("u1", today=day(1))

    assert _record(db).version == version


def test_each_new_day_writes_the_record(db, day):
    StreakService.handle_daily_login("u1", today=day(1))
    version = _record(db).version

    StreakService.handle_daily_login("u1", today=day(2))

    assert _record(db).version > version
