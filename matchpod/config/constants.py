"""
================================================================================
FILE: matchpod/config/constants.py
================================================================================

PURPOSE:
    Application-wide constants. Immutable values used throughout codebase.
    Enables consistency and prevents magic numbers.

CONSTANT CATEGORIES:
    1. API Configuration
    2. Shutdown
    3. CORS origin sets and header lists
    4. Security headers
    5. Rate limit presets
    6. MongoDB connection options
    7. Redis connection options
    8. Health thresholds

KEY FACTS:
    - No computation, just literal values
    - No imports from other matchpod modules (prevent circular deps)
    - Environment-dependent choices are made in settings.py / cors.py,
      never here
"""

# ================================================================================
# API CONFIGURATION
# ================================================================================

API_PREFIX = "/api"
API_TITLE = "MatchPod API"
API_DESCRIPTION = "Backend for the MatchPod mobile app"
API_VERSION = "1.0.0"

# Request bodies above this size are rejected before parsing
MAX_BODY_BYTES = 10 * 1024 * 1024  # 10 MB

# ================================================================================
# SHUTDOWN
# ================================================================================

# Hosting platform sends SIGKILL roughly 10s after SIGTERM
DEFAULT_SHUTDOWN_TIMEOUT_SECONDS = 10.0

EXIT_CODE_CLEAN = 0
EXIT_CODE_FAILURE = 1

# ================================================================================
# CORS ORIGINS
# ================================================================================

PRODUCTION_ORIGINS = (
    "https://matchpod.in",
    "https://www.matchpod.in",
    "https://app.matchpod.in",
    "https://expo.dev",
)

DEVELOPMENT_ORIGINS = (
    "http://localhost:3000",
    "http://localhost:3001",
    "http://localhost:8081",
    "http://localhost:8082",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:8081",
    "http://127.0.0.1:8082",
    "exp://localhost:8081",
    "exp://localhost:8082",
    "exp://127.0.0.1:8081",
    "exp://127.0.0.1:8082",
)

NGROK_ORIGINS = (
    "https://ngrok.io",
    "https://*.ngrok.io",
    "https://*.ngrok-free.app",
)

RENDER_ORIGINS = (
    "https://*.onrender.com",
)

# ================================================================================
# CORS HEADERS
# ================================================================================

CORS_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS")
CORS_STRICT_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE")

CORS_ALLOWED_HEADERS = (
    "Origin",
    "X-Requested-With",
    "Content-Type",
    "Accept",
    "Authorization",
    "X-API-Key",
    "X-Request-ID",
    "X-Client-Version",
    "X-Platform",
    "X-Device-ID",
)

CORS_STRICT_ALLOWED_HEADERS = (
    "Content-Type",
    "Authorization",
    "X-Request-ID",
)

CORS_EXPOSED_HEADERS = (
    "X-RateLimit-Limit",
    "X-RateLimit-Remaining",
    "X-RateLimit-Reset",
    "X-Request-ID",
    "X-Response-Time",
)

CORS_STRICT_EXPOSED_HEADERS = (
    "X-RateLimit-Limit",
    "X-RateLimit-Remaining",
    "X-RateLimit-Reset",
)

CORS_MAX_AGE_DEFAULT = 86400  # 24 hours
CORS_MAX_AGE_STRICT = 3600  # 1 hour
CORS_MAX_AGE_DEVELOPMENT = 0

# ================================================================================
# SECURITY HEADERS
# ================================================================================

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "geolocation=(), microphone=(), camera=()",
    "Content-Security-Policy": (
        "default-src 'self'; "
        "style-src 'self' 'unsafe-inline'; "
        "script-src 'self'; "
        "img-src 'self' data: https:"
    ),
}

# ================================================================================
# RATE LIMIT PRESETS
# ================================================================================
# points: requests allowed per window
# duration: window length (seconds)
# block_duration: cooldown reported to the client after the limit is hit (seconds)

RATE_LIMIT_PRESETS = {
    "api": {"points": 100, "duration": 60, "block_duration": 300},
    "auth": {"points": 10, "duration": 900, "block_duration": 1800},
    "otp": {"points": 5, "duration": 600, "block_duration": 900},
    "login": {"points": 5, "duration": 300, "block_duration": 600},
    "refresh": {"points": 10, "duration": 60, "block_duration": 300},
    "register": {"points": 3, "duration": 3600, "block_duration": 3600},
    "chat": {"points": 50, "duration": 60, "block_duration": 300},
    "swipe": {"points": 100, "duration": 60, "block_duration": 600},
}

RATE_LIMIT_KEY_PREFIX = "rl"

# ================================================================================
# MONGODB CONNECTION OPTIONS
# ================================================================================

MONGODB_CONNECTION_OPTIONS = {
    # Pool sized for a single instance
    "maxPoolSize": 10,
    "minPoolSize": 2,
    "maxIdleTimeMS": 30000,
    # Fail fast instead of hanging
    "serverSelectionTimeoutMS": 5000,
    "connectTimeoutMS": 10000,
    "socketTimeoutMS": 45000,
    "waitQueueTimeoutMS": 10000,
    "retryWrites": True,
    "retryReads": True,
    "heartbeatFrequencyMS": 10000,
}

# ================================================================================
# REDIS CONNECTION OPTIONS
# ================================================================================

REDIS_CONNECT_TIMEOUT_SECONDS = 10.0
REDIS_SOCKET_TIMEOUT_SECONDS = 5.0
REDIS_DATABASE = 0
REDIS_TLS_PORT = 6380

# ================================================================================
# HEALTH
# ================================================================================

REDIS_PING_TIMEOUT_SECONDS = 0.25
REDIS_DEGRADED_THRESHOLD_MS = 250
