import os

# Supabase
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_KEY = os.getenv("SUPABASE_SERVICE_KEY")

# JWT
JWT_SECRET = os.getenv("JWT_SECRET", "your-secret-key-change-this")
JWT_ALGORITHM = "HS256"
JWT_EXPIRATION_HOURS = int(os.getenv("JWT_EXPIRATION_HOURS", "24"))

# CORS
ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        "ALLOWED_ORIGINS",
        "http://localhost:3000,http://127.0.0.1:3000"
    ).split(",")
    if origin.strip()
]

# Setup sheet
WEEK_STARTS_ON = os.getenv("WEEK_STARTS_ON", "sunday")
DEFAULT_BREAK_MINUTES = int(os.getenv("DEFAULT_BREAK_MINUTES", "30"))
REPLACEMENT_STRICT_MODE = os.getenv("REPLACEMENT_STRICT_MODE", "false").lower() in ("1", "true", "yes")
MAX_ROSTER_UPLOAD_BYTES = int(os.getenv("MAX_ROSTER_UPLOAD_BYTES", str(5 * 1024 * 1024)))
# IANA zone used to decide which calendar day "today" is for the store
STORE_TIMEZONE = os.getenv("STORE_TIMEZONE", "UTC")

# Positions allowed to edit setups they did not create
SETUP_EDITOR_POSITIONS = ["Leader", "Director"]
