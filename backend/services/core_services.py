from datetime import datetime, timezone
from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from models import (
    db,
    ProgressRecord,
    VideoProgress,
    UserBadge,
    CompletionRecord,
    CompletionKindEnum,
    XPLog,
    utcnow,
)
from schemas import (
    VideoProgressEvent,
    ArticleCompleteEvent,
    PathCompleteEvent,
    DailyLoginEvent,
    PathwayOpenedEvent,
)
from services.leveling import derive_level, xp_for_next_level, video_xp, next_streak
from utils.constants import (
    XP_REWARDS,
    STREAK_BONUSES,
    BADGE_RULES,
    VIDEO_XP_THRESHOLD,
    VIDEO_COMPLETE_PERCENT,
)
from utils.logging_config import get_logger

logger = get_logger(__name__)


class InvalidEventError(ValueError):
    """Raised before any mutation when an event carries bad input."""


class ProgressStoreError(Exception):
    """The progress store could not be read or written. Nothing was changed."""


def utc_today():
    return datetime.now(timezone.utc).date()


def _require_id(value, field, max_length=255):
    if not isinstance(value, str) or not value.strip():
        raise InvalidEventError(f"{field} is required")
    value = value.strip()
    if len(value) > max_length:
        raise InvalidEventError(f"{field} must be at most {max_length} characters")
    return value


def _require_int(value, field, low=0, high=None):
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidEventError(f"{field} must be an integer")
    if value < low or (high is not None and value > high):
        bounds = f"between {low} and {high}" if high is not None else f"at least {low}"
        raise InvalidEventError(f"{field} must be {bounds}")
    return value


def run_in_transaction(user_id, operation):
    """
    Load the user's record, apply `operation` to it and commit once.

    Write conflicts (another writer bumped the record version, or a racing
    insert hit a unique constraint) roll back and retry the whole operation.
    Any other store failure rolls back and raises ProgressStoreError.
    """
    retries = current_app.config.get("PROGRESS_MAX_RETRIES", 3)
    for attempt in range(1, retries + 1):
        try:
            record = ProgressService.load_record(user_id)
            result = operation(record)
            db.session.commit()
            return result
        except (StaleDataError, IntegrityError) as e:
            db.session.rollback()
            logger.warning("Progress write conflict for user %s (attempt %d/%d): %s",
                           user_id, attempt, retries, e)
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error("Progress store failure for user %s: %s", user_id, e)
            raise ProgressStoreError(f"Progress store unavailable: {e}") from e
        except Exception:
            db.session.rollback()
            raise
    raise ProgressStoreError(f"Could not update progress for user {user_id} after {retries} attempts")


class XPService:
    """Handles XP grants and level recomputation."""

    @staticmethod
    def grant(record, amount, reason, event_key=None):
        """Add XP to a loaded record. The caller commits."""
        record.experience += amount
        record.level = derive_level(record.experience)
        record.xp_logs.append(XPLog(amount=amount, reason=reason, event_key=event_key))
        logger.info("Added %d XP to user %s (reason: %s)", amount, record.user_id, reason)
        return amount

    @staticmethod
    def has_event(record, event_key):
        return record.xp_logs.filter_by(event_key=event_key).first() is not None

    @staticmethod
    def award_xp(user_id, amount, reason, event_key=None):
        """Award XP for a learning event and report level-ups and new badges."""
        user_id = _require_id(user_id, "user_id", max_length=128)
        amount = _require_int(amount, "amount")
        reason = _require_id(reason, "reason")

        def apply(record):
            start_xp, start_level = record.experience, record.level
            if event_key and XPService.has_event(record, event_key):
                return ProgressService.summary(record, start_xp, start_level, [], duplicate=True)
            XPService.grant(record, amount, reason, event_key=event_key)
            return ProgressService.finish(record, start_xp, start_level)

        return run_in_transaction(user_id, apply)


class StreakService:

    @staticmethod
    def handle_daily_login(user_id, today=None):
        """Roll the daily streak forward and award login and streak bonus XP."""
        user_id = _require_id(user_id, "user_id", max_length=128)
        today = today or utc_today()

        def apply(record):
            start_xp, start_level = record.experience, record.level
            if record.last_login_date == today:
                return ProgressService.summary(
                    record, start_xp, start_level, [],
                    already_processed=True, streak=StreakService.streak_dict(record),
                )

            previous = record.streak_current
            current, longest = next_streak(
                record.streak_current, record.streak_longest, record.streak_last_active, today
            )
            record.streak_current = current
            record.streak_longest = longest
            record.streak_last_active = today
            record.last_login_date = today

            XPService.grant(record, XP_REWARDS['daily_login'], "Daily login bonus")
            if current != previous and current in STREAK_BONUSES:
                XPService.grant(record, STREAK_BONUSES[current], f"{current}-day streak bonus")

            return ProgressService.finish(
                record, start_xp, start_level,
                already_processed=False, streak=StreakService.streak_dict(record),
            )

        return run_in_transaction(user_id, apply)

    @staticmethod
    def streak_dict(record):
        return {
            "current": record.streak_current,
            "longest": record.streak_longest,
            "last_active_date": record.streak_last_active.isoformat() if record.streak_last_active else None,
        }


class BadgeService:

    @staticmethod
    def evaluate(record):
        """Unlock every badge whose rule now holds. Returns the new badge keys in rule order."""
        unlocked = []
        for badge_key, rule in BADGE_RULES.items():
            if record.has_badge(badge_key):
                continue
            if record.metric(rule["metric"]) >= rule["target"]:
                record.badges[badge_key] = UserBadge(badge_key=badge_key)
                unlocked.append(badge_key)
                logger.info("User %s unlocked badge %s", record.user_id, badge_key)
        return unlocked

    @staticmethod
    def definitions():
        return [
            {
                "id": badge_key,
                "name": rule["name"],
                "description": rule["description"],
                "icon": rule["icon"],
                "requirement": rule["requirement"],
            }
            for badge_key, rule in BADGE_RULES.items()
        ]

    @staticmethod
    def get_user_badge_progress(user_id):
        """Return a user's progress toward each badge"""
        user_id = _require_id(user_id, "user_id", max_length=128)

        def apply(record):
            progress = []
            for definition in BadgeService.definitions():
                rule = BADGE_RULES[definition["id"]]
                badge = record.badges.get(definition["id"])
                progress.append({
                    **definition,
                    "unlocked": badge is not None,
                    "awarded_at": badge.awarded_at.isoformat() if badge and badge.awarded_at else None,
                    "current": record.metric(rule["metric"]),
                    "target": rule["target"],
                })
            return progress

        return run_in_transaction(user_id, apply)


class ProgressService:
    """Entry points for learning events and stats."""

    @staticmethod
    def load_record(user_id):
        record = db.session.get(ProgressRecord, user_id)
        if record is None:
            record = ProgressRecord(user_id=user_id)
            db.session.add(record)
            logger.debug("Created progress record for user %s", user_id)
        return record

    @staticmethod
    def summary(record, start_xp, start_level, badges_unlocked, **extra):
        return {
            "xp_awarded": record.experience - start_xp,
            "experience": record.experience,
            "level": record.level,
            "previous_level": start_level,
            "leveled_up": record.level > start_level,
            "xp_to_next_level": xp_for_next_level(record.experience, record.level),
            "badges_unlocked": badges_unlocked,
            **extra,
        }

    @staticmethod
    def finish(record, start_xp, start_level, **extra):
        """Shared last step of every mutating operation: badge evaluation, then the result.

        Touching updated_at bumps the record version, so concurrent writers
        conflict. Read-only and no-op paths use summary() and leave it alone.
        """
        record.updated_at = utcnow()
        badges = BadgeService.evaluate(record)
        return ProgressService.summary(record, start_xp, start_level, badges, **extra)

    @staticmethod
    def has_completed(record, kind, item_id):
        return record.completions.filter_by(kind=kind, item_id=item_id).first() is not None

    @staticmethod
    def mark_completed(record, kind, item_id):
        """Count a resource or path once. Returns False when it was already counted."""
        if ProgressService.has_completed(record, kind, item_id):
            return False
        record.completions.append(CompletionRecord(kind=kind, item_id=item_id))
        if kind is CompletionKindEnum.path:
            record.completed_path_count += 1
        else:
            record.completed_resource_count += 1
        return True

    @staticmethod
    def get_stats(user_id):
        user_id = _require_id(user_id, "user_id", max_length=128)
        return run_in_transaction(user_id, lambda record: record.to_dict())

    @staticmethod
    def handle_video_progress(user_id, resource_id, percent):
        """Store watch progress and award the 10% and 100% video XP."""
        user_id = _require_id(user_id, "user_id", max_length=128)
        resource_id = _require_id(resource_id, "resource_id")
        percent = _require_int(percent, "percent", 0, 100)

        def apply(record):
            start_xp, start_level = record.experience, record.level
            video = record.videos.get(resource_id)
            prior = video.percent if video else 0

            # Late, lower updates never erase progress already recorded
            if video is not None and percent <= prior:
                return ProgressService.summary(
                    record, start_xp, start_level, [],
                    resource_id=resource_id, percent=prior, completed=False,
                )
            if video is None:
                record.videos[resource_id] = VideoProgress(resource_id=resource_id, percent=percent)
            else:
                video.percent = percent

            if prior < VIDEO_XP_THRESHOLD <= percent:
                XPService.grant(record, video_xp(percent), f"Watched {percent}% of video {resource_id}")

            # Completion XP follows the counter. A resource already counted by an
            # article event is not paid twice.
            completed = (
                prior < VIDEO_COMPLETE_PERCENT <= percent
                and ProgressService.mark_completed(record, CompletionKindEnum.resource, resource_id)
            )
            if completed:
                XPService.grant(record, video_xp(VIDEO_COMPLETE_PERCENT), f"Completed video {resource_id}")

            return ProgressService.finish(
                record, start_xp, start_level,
                resource_id=resource_id,
                percent=max(prior, percent),
                completed=completed,
            )

        return run_in_transaction(user_id, apply)

    @staticmethod
    def handle_article_complete(user_id, resource_id):
        user_id = _require_id(user_id, "user_id", max_length=128)
        resource_id = _require_id(resource_id, "resource_id")

        def apply(record):
            start_xp, start_level = record.experience, record.level
            if not ProgressService.mark_completed(record, CompletionKindEnum.resource, resource_id):
                return ProgressService.summary(record, start_xp, start_level, [], duplicate=True)
            XPService.grant(record, XP_REWARDS['article_complete'], f"Completed article {resource_id}")
            return ProgressService.finish(record, start_xp, start_level, duplicate=False)

        return run_in_transaction(user_id, apply)

    @staticmethod
    def handle_path_complete(user_id, path_id):
        user_id = _require_id(user_id, "user_id", max_length=128)
        path_id = _require_id(path_id, "path_id")

        def apply(record):
            start_xp, start_level = record.experience, record.level
            if not ProgressService.mark_completed(record, CompletionKindEnum.path, path_id):
                return ProgressService.summary(record, start_xp, start_level, [], duplicate=True)
            XPService.grant(record, XP_REWARDS['path_complete'], f"Completed learning path {path_id}")
            return ProgressService.finish(record, start_xp, start_level, duplicate=False)

        return run_in_transaction(user_id, apply)

    @staticmethod
    def handle_pathway_opened(user_id, topic, today=None):
        """1 XP for opening a learning pathway, once per topic per day."""
        topic = _require_id(topic, "topic", max_length=200).lower()
        today = today or utc_today()
        event_key = f"pathway_opened:{topic}:{today.isoformat()}"
        return XPService.award_xp(
            user_id, XP_REWARDS['pathway_opened'], f"Opened learning pathway {topic}", event_key=event_key
        )

    @staticmethod
    def handle_event(user_id, event, today=None):
        """Dispatch a validated learning event to its handler."""
        if isinstance(event, VideoProgressEvent):
            return ProgressService.handle_video_progress(user_id, event.resource_id, event.percent)
        if isinstance(event, ArticleCompleteEvent):
            return ProgressService.handle_article_complete(user_id, event.resource_id)
        if isinstance(event, PathCompleteEvent):
            return ProgressService.handle_path_complete(user_id, event.path_id)
        if isinstance(event, DailyLoginEvent):
            return StreakService.handle_daily_login(user_id, today=today)
        if isinstance(event, PathwayOpenedEvent):
            return ProgressService.handle_pathway_opened(user_id, event.topic, today=today)
        raise InvalidEventError(f"Unknown event type: {type(event).__name__}")


def record_event_safely(user_id, event, today=None):
    """
    Best-effort variant of ProgressService.handle_event for in-process callers.

    A store failure is logged and reported as None so the learning action the
    event is attached to still goes through.
    """
    try:
        return ProgressService.handle_event(user_id, event, today=today)
    except ProgressStoreError as e:
        logger.error("Failed to record %s for user %s: %s",
                     getattr(event, "type", "event"), user_id, e)
        return None
