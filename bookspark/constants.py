"""Centralized application constants: single source of truth for hardcoded values."""

# --- Session ---
COOKIE_NAME = "bookspark_session"

# --- OAuth ---
OAUTH_STATE_TTL = 600  # seconds (10 min)
DEFAULT_TOKEN_EXPIRY = 7200  # seconds (2 hours)

# --- Twitter API URLs ---
TWITTER_AUTHORIZE_URL = "https://twitter.com/i/oauth2/authorize"
TWITTER_TOKEN_URL = "https://api.twitter.com/2/oauth2/token"
TWITTER_USER_ME_URL = "https://api.twitter.com/2/users/me"
TWITTER_BOOKMARKS_URL = "https://api.twitter.com/2/users/{user_id}/bookmarks"
TWITTER_SCOPES = "tweet.read users.read bookmark.read offline.access"

# --- Twitter API Fields ---
TWEET_FIELDS = "id,text,created_at,author_id,attachments,entities,public_metrics"
USER_FIELDS = "id,name,username,profile_image_url,verified"
MEDIA_FIELDS = "media_key,type,url,preview_image_url"
EXPANSIONS = "author_id,attachments.media_keys"
TWITTER_API_MAX_RESULTS = 100
TWITTER_API_MIN_RESULTS = 5
TOKEN_REFRESH_THRESHOLD_MINUTES = 5

# Profile images come back as *_normal.jpg (48x48)
AVATAR_LOW_RES_MARKER = "_normal."
AVATAR_HIGH_RES_MARKER = "_400x400."

# --- Anthropic ---
ANTHROPIC_API_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_API_VERSION = "2023-06-01"
LMSTUDIO_PLACEHOLDER_KEY = "lm-studio"

# --- HTTP Client ---
HTTP_TOTAL_TIMEOUT = 180  # seconds
HTTP_CONNECT_TIMEOUT = 10  # seconds
USER_AGENT = "BookSpark/0.1 (+https://bookspark.app)"
TWITTER_API_TIMEOUT = 30  # seconds

# --- Content analysis ---
SUMMARY_MAX_CHARS = 200
FALLBACK_SUMMARY_CHARS = 100
MAX_TOPICS = 5
MAX_SUGGESTED_ACTIONS = 5
FALLBACK_CONTENT_TYPE = "unknown"
FALLBACK_ACTIONS = ["Mark as done", "Save for later"]

# --- Digest ---
DIGEST_CANDIDATE_DAYS = 7
DIGEST_CANDIDATE_MULTIPLIER = 2
DIGEST_MIN_DIVERSE_PICKS = 2
DIGEST_HOUR_WINDOW = 1
SNOOZE_DAYS = 7
CONTENT_PREVIEW_CHARS = 150

# --- Worker ---
ARQ_MAX_JOBS = 1
ARQ_JOB_TIMEOUT = 1800  # seconds (30 min)

# --- Pagination ---
BOOKMARKS_DEFAULT_LIMIT = 50
BOOKMARKS_MAX_LIMIT = 100
