from __future__ import annotations

from pathlib import Path

# Bounded store capacities.
DEFAULT_LOG_CAPACITY = 1000
DEFAULT_API_RESULT_CAPACITY = 100

# Runner defaults.
DEFAULT_TEST_TIMEOUT_SECONDS = 30.0
TIMEOUT_ERROR_MESSAGE = "timeout"
RETURNED_FALSE_MESSAGE = "Test returned false"

# Serialized store layout keys.
STORE_KEY_LOGS = "logs"
STORE_KEY_FEATURE_TEST_RESULTS = "featureTestResults"
STORE_KEY_API_TEST_RESULTS = "apiTestResults"

# Feature areas used to categorize logs and tests.
AREA_GOAL = "goal"
AREA_PROGRESS = "progress"
AREA_DASHBOARD = "dashboard"
AREA_ANALYTICS = "analytics"
AREA_ACHIEVEMENT = "achievement"
AREA_SETTINGS = "settings"
AREA_AUTH = "auth"
AREA_API = "api"
AREA_STORAGE = "storage"
AREA_UI = "ui"
AREA_NOTIFICATION = "notification"
AREA_PERFORMANCE = "performance"

FEATURE_AREAS = (
    AREA_GOAL,
    AREA_PROGRESS,
    AREA_DASHBOARD,
    AREA_ANALYTICS,
    AREA_ACHIEVEMENT,
    AREA_SETTINGS,
    AREA_AUTH,
    AREA_API,
    AREA_STORAGE,
    AREA_UI,
    AREA_NOTIFICATION,
    AREA_PERFORMANCE,
)

# Bucket for tests no tier could place.
OTHER_FEATURES = "Other Features"

# Curated feature -> test id groups, applied after explicit feature names.
CURATED_FEATURE_TESTS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("Dashboard", ("dashboard-stats", "dashboard-ui", "dashboard-api")),
    ("Goal Creation", ("goal-creation", "create-goal-modal")),
    ("Goal Tracking", ("goal-progress", "goal-tracking-ui")),
    ("Progress Logging", ("progress-log", "log-progress-modal")),
    ("Analytics", ("analytics-chart", "analytics-data")),
    ("Achievements", ("achievement-badges", "achievement-ui")),
    ("Action Items", ("action-items-creation", "action-items-completion")),
    ("User Settings", ("settings-update", "settings-ui")),
    ("Category Management", ("category-creation", "category-list")),
    ("Performance Metrics", ("performance-metrics", "memory-usage")),
    ("Debug Infrastructure", ("debug-infrastructure", "enhanced-logger", "api-tester", "feature-tester")),
    ("Log Viewer", ("log-viewer",)),
    ("API Dashboard", ("api-dashboard",)),
    ("Feature Dashboard", ("feature-dashboard",)),
)

# Features tracked out of the box.
DEFAULT_FEATURES = (
    "dashboard-stats",
    "goal-creation",
    "goal-progress-tracking",
    "analytics-charts",
    "achievements-badges",
    "settings-profile",
    "settings-appearance",
    "settings-notifications",
    "settings-security",
)

# Read-only endpoints probed by the API tester.
API_ENDPOINTS = {
    "users": "/api/users",
    "dashboard": "/api/dashboard/stats",
    "goals": "/api/goals",
    "goal_by_id": "/api/goals/:id",
    "categories": "/api/categories",
    "progress_logs": "/api/progress-logs",
    "progress_logs_by_goal": "/api/progress-logs/:goalId",
    "action_items": "/api/action-items",
    "badges": "/api/badges",
}
DEFAULT_PROBE_ENDPOINTS = ("dashboard", "goals", "categories", "action_items", "badges")
DEFAULT_API_BASE_URL = "http://localhost:5000"

# Payload truncation for traced API bodies.
TRACE_BODY_LIMIT = 1000

CONFIG_FILENAME = Path("featurecheck.yaml")
SUITE_ENTRY_POINT_GROUP = "featurecheck.suites"

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_INTERNAL_ERROR = 2

# CLI state file when neither --state nor config names one.
DEFAULT_STATE_PATH = Path(".featurecheck") / "debug_storage.json"
DEFAULT_CLI_LOG_LIMIT = 50
