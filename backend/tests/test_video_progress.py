import pytest

from models import ProgressRecord
from services.core_services import ProgressService, InvalidEventError


def _record(db, user_id="u1"):
    return db.session.get(ProgressRecord, user_id)


def test_progress_below_ten_percent_awards_nothing(db):
    result = ProgressService.handle_video_progress("u1", "vid", 5)

    assert result["xp_awarded"] == 0
    assert result["percent"] == 5
    assert _record(db).to_dict()["video_progress"] == {"vid": 5}


def test_crossing_ten_percent_awards_tier_xp_once(db):
    ProgressService.handle_video_progress("u1", "vid", 5)
    crossing = ProgressService.handle_video_progress("u1", "vid", 15)
    later = ProgressService.handle_video_progress("u1", "vid", 50)

    assert crossing["xp_awarded"] == 1
    assert later["xp_awarded"] == 0
    assert _record(db).experience == 1


def test_first_crossing_uses_reported_percentage(db):
    result = ProgressService.handle_video_progress("u1", "vid", 45)
    assert result["xp_awarded"] == 4


def test_jump_to_complete_awards_both_and_counts_once(db):
    ProgressService.handle_video_progress("u1", "vid", 5)
    result = ProgressService.handle_video_progress("u1", "vid", 100)

    assert result["xp_awarded"] == 20
    assert result["completed"] is True
    assert result["badges_unlocked"] == ["first_step"]
    assert _record(db).completed_resource_count == 1


def test_completion_after_tier_awards_completion_only(db):
    ProgressService.handle_video_progress("u1", "vid", 30)
    result = ProgressService.handle_video_progress("u1", "vid", 100)

    assert result["xp_awarded"] == 10
    assert _record(db).experience == 13


def test_repeated_completion_is_ignored(db):
    ProgressService.handle_video_progress("u1", "vid", 100)
    again = ProgressService.handle_video_progress("u1", "vid", 100)

    assert again["xp_awarded"] == 0
    assert again["completed"] is False
    assert _record(db).completed_resource_count == 1


def test_late_lower_update_keeps_highest_progress(db):
    ProgressService.handle_video_progress("u1", "vid", 100)
    stale = ProgressService.handle_video_progress("u1", "vid", 40)

    assert stale["percent"] == 100
    assert stale["xp_awarded"] == 0
    record = _record(db)
    assert record.videos["vid"].percent == 100
    assert record.completed_resource_count == 1


def test_videos_are_tracked_separately(db):
    ProgressService.handle_video_progress("u1", "a", 20)
    result = ProgressService.handle_video_progress("u1", "b", 20)

    assert result["xp_awarded"] == 2
    assert _record(db).to_dict()["video_progress"] == {"a": 20, "b": 20}


def test_ten_full_videos_unlock_focused_and_dedicated_learner(db):
    results = [ProgressService.handle_video_progress("u1", f"vid-{i}", 100) for i in range(10)]

    assert results[0]["badges_unlocked"] == ["first_step"]
    assert all(r["badges_unlocked"] == [] for r in results[1:9])
    assert results[9]["badges_unlocked"] == ["focused_learner", "dedicated_learner"]
    assert _record(db).experience == 200


@pytest.mark.parametrize("percent", [-1, 101, 45.5, "50", None])
def test_out_of_range_percent_is_rejected(db, percent):
    with pytest.raises(InvalidEventError):
        ProgressService.handle_video_progress("u1", "vid", percent)
    assert _record(db) is None


def test_missing_resource_id_is_rejected(db):
    with pytest.raises(InvalidEventError):
        ProgressService.handle_video_progress("u1", "", 50)


def test_finishing_video_already_read_as_article_pays_tier_xp_only(db):
    ProgressService.handle_article_complete("u1", "yt-1")
    result = ProgressService.handle_video_progress("u1", "yt-1", 100)

    assert result["completed"] is False
    assert result["xp_awarded"] == 10
    record = _record(db)
    assert record.completed_resource_count == 1
    assert record.experience == 18
