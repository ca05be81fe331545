"""Application-wide constants for the club booking service."""

BRAND_NAME = "Mill Town ABC"
API_VERSION = "1.0.0"

# Booking statuses counted as holding a seat
ACTIVE_BOOKING_STATUSES = ("pending", "pending_cash", "confirmed")

# Member validation
MIN_NAME_LENGTH = 2
MAX_NAME_LENGTH = 100
MIN_PASSWORD_LENGTH = 8
MAX_PASSWORD_LENGTH = 128
UK_MOBILE_PATTERN = r"^(?:07\d{9}|\+447\d{9})$"
EXPERIENCE_LEVELS = ("beginner", "intermediate", "advanced")

# Email cooldowns
VERIFICATION_RESEND_COOLDOWN_SECONDS = 60
PASSWORD_RESET_COOLDOWN_SECONDS = 60
PASSWORD_RESET_TOKEN_TTL_MINUTES = 60

# Cancellation window for free-session restoration
FREE_SESSION_RESTORE_WINDOW_MINUTES = 60

# Weekly recurring classes seeded into class_templates (0 = Monday)
DEFAULT_CLASS_TEMPLATES = (
    {
        "day_of_week": 0,
        "time": "17:30",
        "title": "Beginners Class",
        "class_type": "beginners",
        "duration": 60,
        "description": "Perfect for those new to boxing. Learn fundamentals, technique, and fitness.",
    },
    {
        "day_of_week": 0,
        "time": "17:45",
        "title": "Senior & Carded Boxers",
        "class_type": "senior",
        "duration": 135,
        "description": "Advanced training for experienced and carded boxers.",
    },
    {
        "day_of_week": 2,
        "time": "17:30",
        "title": "Open Class Training",
        "class_type": "open",
        "duration": 60,
        "description": "Open training session for all experience levels.",
    },
    {
        "day_of_week": 5,
        "time": "10:00",
        "title": "Open Class Training",
        "class_type": "open",
        "duration": 60,
        "description": "Weekend open training session for all experience levels.",
    },
)

# Query limits
DEFAULT_QUERY_LIMIT = 100
SECURITY_LOG_DEFAULT_LIMIT = 100
