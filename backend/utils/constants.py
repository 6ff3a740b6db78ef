XP_REWARDS = {
    'video_tier_step': 10,     # 1 XP per 10% watched
    'video_tier_cap': 10,
    'article_complete': 8,
    'path_complete': 50,
    'daily_login': 5,
    'pathway_opened': 1,
}

# Awarded when the current streak moves onto exactly this many days
STREAK_BONUSES = {
    3: 15,
    7: 30,
}

LEVEL_THRESHOLDS = {
    1: 0,
    2: 100,
    3: 300,
    4: 600,
}
LEVEL_INCREMENT = 300  # flat cost of every level after 4

VIDEO_XP_THRESHOLD = 10
VIDEO_COMPLETE_PERCENT = 100

BADGE_RULES = {
    "first_step": {
        "name": "First Step",
        "description": "You've started your journey!",
        "icon": "🧩",
        "requirement": "Complete first resource",
        "metric": "completed_resources",
        "target": 1,
    },
    "streak_starter": {
        "name": "Streak Starter",
        "description": "Consistency pays off!",
        "icon": "🔥",
        "requirement": "Maintain a 3-day streak",
        "metric": "current_streak",
        "target": 3,
    },
    "focused_learner": {
        "name": "Focused Learner",
        "description": "Focused and steady progress",
        "icon": "🎯",
        "requirement": "Watch 10 full videos",
        "metric": "completed_videos",
        "target": 10,
    },
    "dedicated_learner": {
        "name": "Dedicated Learner",
        "description": "Committed to growth",
        "icon": "📚",
        "requirement": "Complete 10 resources",
        "metric": "completed_resources",
        "target": 10,
    },
    "expert": {
        "name": "Expert",
        "description": "A true master of learning",
        "icon": "🏆",
        "requirement": "Reach 1000 XP",
        "metric": "experience",
        "target": 1000,
    },
    "week_warrior": {
        "name": "Week Warrior",
        "description": "7 days strong!",
        "icon": "⚡",
        "requirement": "Maintain a 7-day streak",
        "metric": "current_streak",
        "target": 7,
    },
    "path_completer": {
        "name": "Path Completer",
        "description": "You finished a full learning path!",
        "icon": "🎓",
        "requirement": "Complete your first learning path",
        "metric": "completed_paths",
        "target": 1,
    },
}
