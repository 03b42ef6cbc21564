"""Achievement milestone definitions.

These values MUST match the mobile client's achievement screen: titles,
icons and goals are displayed as-is.
"""

from __future__ import annotations

VIDEO_MILESTONES: list[int] = [1, 10, 25, 50, 100, 200, 500]

SUBJECT_MILESTONES: list[int] = [1, 5, 10, 25, 50, 100]

STREAK_MILESTONES: list[dict] = [
    {"days": 3, "title": "Weekend Warrior"},
    {"days": 7, "title": "Week Champion"},
    {"days": 14, "title": "Fortnight Master"},
    {"days": 30, "title": "Monthly Maven"},
    {"days": 60, "title": "Dedication Master"},
    {"days": 100, "title": "Unstoppable"},
    {"days": 365, "title": "Year of Excellence"},
]

TIME_MILESTONES: list[dict] = [
    {"minutes": 60, "title": "Hour Scholar", "description": "Study for 1 hour"},
    {"minutes": 180, "title": "Deep Diver", "description": "Study for 3 hours"},
    {"minutes": 300, "title": "Focus Master", "description": "Study for 5 hours"},
    {"minutes": 480, "title": "Full-Day Scholar", "description": "Study for 8 hours"},
    {"minutes": 720, "title": "Marathon Learner", "description": "Study for 12 hours"},
]

SOCIAL_THRESHOLDS: list[int] = [5, 10, 25, 50, 100]

# Keyed by the counter name in achievements.social.
SOCIAL_COUNTERS: list[dict] = [
    {
        "key": "createdCollections",
        "kind": "collections",
        "title": "Collection Creator",
        "description": "Create {n} study collections",
        "icon": "folder.badge.plus",
    },
    {
        "key": "createdNotes",
        "kind": "notes",
        "title": "Note Taker",
        "description": "Create {n} study notes",
        "icon": "note.text",
    },
    {
        "key": "sharedResources",
        "kind": "shares",
        "title": "Helpful Scholar",
        "description": "Share {n} study resources",
        "icon": "square.and.arrow.up",
    },
    {
        "key": "joinedGroups",
        "kind": "groups",
        "title": "Collaborator",
        "description": "Join {n} study groups",
        "icon": "person.3.fill",
    },
    {
        "key": "helpedStudents",
        "kind": "helped",
        "title": "Community Pillar",
        "description": "Help {n} other students",
        "icon": "hand.raised.fill",
    },
]

SOCIAL_KINDS: dict[str, str] = {c["kind"]: c["key"] for c in SOCIAL_COUNTERS}

# Keyed by the counter name in achievements.special; one goal each.
SPECIAL_GOALS: list[dict] = [
    {
        "key": "earlyBirdSessions",
        "title": "Early Bird",
        "description": "Complete a study session before 8 AM",
        "icon": "sunrise.fill",
        "goal": 1,
    },
    {
        "key": "nightOwlSessions",
        "title": "Night Owl",
        "description": "Complete a study session after 10 PM",
        "icon": "moon.stars.fill",
        "goal": 1,
    },
    {
        "key": "weekendStudySessions",
        "title": "Weekend Warrior",
        "description": "Complete 4 study sessions on weekends",
        "icon": "calendar.badge.clock",
        "goal": 4,
    },
    {
        "key": "multiSubjectDays",
        "title": "Subject Explorer",
        "description": "Study 5 different subjects in one day",
        "icon": "rectangle.grid.2x2.fill",
        "goal": 5,
    },
    {
        "key": "perfectWeeks",
        "title": "Perfect Week",
        "description": "Complete all daily goals for a week",
        "icon": "checkmark.seal.fill",
        "goal": 7,
    },
    {
        "key": "speedLearning",
        "title": "Speed Learner",
        "description": "Complete 3 videos in one hour",
        "icon": "bolt.fill",
        "goal": 3,
    },
    {
        "key": "diverseLearning",
        "title": "Diverse Scholar",
        "description": "Study across all difficulty levels",
        "icon": "chart.bar.fill",
        "goal": 5,
    },
    {
        "key": "focusSessions",
        "title": "Focus Champion",
        "description": "Study for 2 hours without breaks",
        "icon": "brain.head.profile",
        "goal": 2,
    },
]

# --- Session tracking rules ---
EARLY_BIRD_HOUR = 8
NIGHT_OWL_HOUR = 22
FOCUS_SESSION_SECONDS = 7200
SPEED_LEARNING_MAX_SECONDS = 3600
SPEED_LEARNING_MIN_VIDEOS = 3
MULTI_SUBJECT_DAY_SUBJECTS = 5
PERFECT_WEEK_STREAK = 7
