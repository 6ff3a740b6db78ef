from datetime import datetime, timezone
import enum
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.orm import validates, attribute_keyed_dict

from services.leveling import xp_threshold, xp_for_next_level

db = SQLAlchemy()


def utcnow():
    return datetime.now(timezone.utc)


# Enums
class CompletionKindEnum(enum.Enum):
    resource = "resource"
    path = "path"


# Core Models
class ProgressRecord(db.Model):
    """Per-user gamification state. Only the progression services mutate it."""
    __tablename__ = "progress_record"

    user_id = db.Column(db.String(128), primary_key=True)
    experience = db.Column(db.Integer, default=0, nullable=False)
    level = db.Column(db.Integer, default=1, nullable=False)
    streak_current = db.Column(db.Integer, default=0, nullable=False)
    streak_longest = db.Column(db.Integer, default=0, nullable=False)
    streak_last_active = db.Column(db.Date, nullable=True)
    last_login_date = db.Column(db.Date, nullable=True)
    completed_resource_count = db.Column(db.Integer, default=0, nullable=False)
    completed_path_count = db.Column(db.Integer, default=0, nullable=False)
    version = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    __mapper_args__ = {"version_id_col": version}

    # Relationships
    videos = db.relationship(
        "VideoProgress",
        back_populates="record",
        collection_class=attribute_keyed_dict("resource_id"),
        cascade="all, delete-orphan",
    )
    badges = db.relationship(
        "UserBadge",
        back_populates="record",
        collection_class=attribute_keyed_dict("badge_key"),
        cascade="all, delete-orphan",
    )
    completions = db.relationship("CompletionRecord", lazy="dynamic", cascade="all, delete-orphan")
    xp_logs = db.relationship("XPLog", lazy="dynamic", cascade="all, delete-orphan")

    def __init__(self, **kwargs):
        for field in ("experience", "streak_current", "streak_longest",
                      "completed_resource_count", "completed_path_count"):
            kwargs.setdefault(field, 0)
        kwargs.setdefault("level", 1)
        super().__init__(**kwargs)

    #  Methods
    def __repr__(self):
        return f"<ProgressRecord {self.user_id} xp={self.experience} level={self.level}>"

    def completed_video_count(self):
        return sum(1 for video in self.videos.values() if video.percent == 100)

    def metric(self, name):
        """Current value of a badge metric."""
        metrics = {
            "completed_resources": lambda: self.completed_resource_count,
            "completed_paths": lambda: self.completed_path_count,
            "completed_videos": self.completed_video_count,
            "current_streak": lambda: self.streak_current,
            "experience": lambda: self.experience,
        }
        if name not in metrics:
            raise ValueError(f"Unknown badge metric: {name}")
        return metrics[name]()

    def has_badge(self, badge_key):
        return badge_key in self.badges

    def to_dict(self):
        return {
            "user_id": self.user_id,
            "experience": self.experience,
            "level": self.level,
            "xp_to_next_level": xp_for_next_level(self.experience, self.level),
            "next_level_threshold": xp_threshold(self.level + 1),
            "streak": {
                "current": self.streak_current,
                "longest": self.streak_longest,
                "last_active_date": self.streak_last_active.isoformat() if self.streak_last_active else None,
            },
            "badges": {key: True for key in self.badges},
            "video_progress": {resource_id: video.percent for resource_id, video in self.videos.items()},
            "completed_resource_count": self.completed_resource_count,
            "completed_path_count": self.completed_path_count,
            "last_login_date": self.last_login_date.isoformat() if self.last_login_date else None,
        }

    @validates("experience", "completed_resource_count", "completed_path_count",
               "streak_current", "streak_longest")
    def validate_counter(self, key, value):
        if value < 0:
            raise ValueError(f"{key} cannot be negative.")
        return value


class VideoProgress(db.Model):
    __tablename__ = "video_progress"
    __table_args__ = (db.UniqueConstraint("user_id", "resource_id"),)

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(128), db.ForeignKey("progress_record.user_id"), nullable=False, index=True)
    resource_id = db.Column(db.String(255), nullable=False)
    percent = db.Column(db.Integer, default=0, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    record = db.relationship("ProgressRecord", back_populates="videos")

    def __repr__(self):
        return f"<VideoProgress {self.user_id}:{self.resource_id} {self.percent}%>"

    @validates("percent")
    def validate_percent(self, key, percent):
        if percent < 0 or percent > 100:
            raise ValueError("Video progress must be between 0 and 100.")
        return percent


class UserBadge(db.Model):
    __tablename__ = "user_badge"
    __table_args__ = (db.UniqueConstraint("user_id", "badge_key"),)

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(128), db.ForeignKey("progress_record.user_id"), nullable=False, index=True)
    badge_key = db.Column(db.String(100), nullable=False)
    awarded_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    record = db.relationship("ProgressRecord", back_populates="badges")

    def to_dict(self):
        return {
            'user_id': self.user_id,
            'badge_key': self.badge_key,
            'awarded_at': self.awarded_at.isoformat() if self.awarded_at else None
        }


class CompletionRecord(db.Model):
    """A resource or path already counted towards the completion totals."""
    __tablename__ = "completion_record"
    __table_args__ = (db.UniqueConstraint("user_id", "kind", "item_id"),)

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(128), db.ForeignKey("progress_record.user_id"), nullable=False, index=True)
    kind = db.Column(db.Enum(CompletionKindEnum), nullable=False)
    item_id = db.Column(db.String(255), nullable=False)
    completed_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    def to_dict(self):
        return {
            'user_id': self.user_id,
            'kind': self.kind.value,
            'item_id': self.item_id,
            'completed_at': self.completed_at.isoformat() if self.completed_at else None
        }


class XPLog(db.Model):
    __tablename__ = "xp_log"
    __table_args__ = (db.UniqueConstraint("user_id", "event_key"),)

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(128), db.ForeignKey("progress_record.user_id"), nullable=False, index=True)
    amount = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(255))
    event_key = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    def to_dict(self):
        return {
            'user_id': self.user_id,
            'amount': self.amount,
            'reason': self.reason,
            'event_key': self.event_key,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }
