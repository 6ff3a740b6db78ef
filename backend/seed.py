from app import app, db
from services.core_services import ProgressService, StreakService
from utils.logging_config import get_logger
from datetime import datetime, timezone, timedelta

logger = get_logger("seed")


def _days_ago(days):
    return datetime.now(timezone.utc).date() - timedelta(days=days)


def seed_database():
    print("🔄 Resetting database...")
    db.drop_all()
    db.create_all()

    # Newcomer: first login and half of one video
    StreakService.handle_daily_login("newcomer", today=_days_ago(0))
    ProgressService.handle_video_progress("newcomer", "yt_intro_python", 45)

    # Regular: a week-long streak, a few videos and articles
    for offset in range(6, -1, -1):
        StreakService.handle_daily_login("regular", today=_days_ago(offset))
    for index in range(4):
        ProgressService.handle_video_progress("regular", f"yt_css_{index}", 100)
    for slug in ("mdn-flexbox", "mdn-grid", "css-tricks-selectors"):
        ProgressService.handle_article_complete("regular", slug)
    ProgressService.handle_pathway_opened("regular", "web design", today=_days_ago(0))

    # Veteran: finished paths and lots of videos
    for offset in range(2, -1, -1):
        StreakService.handle_daily_login("veteran", today=_days_ago(offset))
    for index in range(12):
        ProgressService.handle_video_progress("veteran", f"yt_ml_{index}", 100)
    for index in range(6):
        ProgressService.handle_article_complete("veteran", f"ml-article-{index}")
    ProgressService.handle_path_complete("veteran", "machine-learning-basics")
    ProgressService.handle_path_complete("veteran", "data-science-foundations")

    for user_id in ("newcomer", "regular", "veteran"):
        stats = ProgressService.get_stats(user_id)
        logger.info(
            "%s: %d XP, level %d, streak %d, badges %s",
            user_id, stats["experience"], stats["level"],
            stats["streak"]["current"], ", ".join(sorted(stats["badges"])) or "-",
        )

    print("✅ Done.")


if __name__ == "__main__":
    with app.app_context():
        seed_database()
