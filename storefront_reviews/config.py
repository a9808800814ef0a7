import os

EXPORT_DIR = os.getenv("REVIEWS_EXPORT_DIR", "exports")

DEFAULT_LANG = os.getenv("REVIEWS_DEFAULT_LANG", "tr")
DEFAULT_COUNTRY = os.getenv("REVIEWS_DEFAULT_COUNTRY", "tr")

# Pacing between consecutive page requests, in seconds
PLAY_PAGE_DELAY = float(os.getenv("REVIEWS_PLAY_PAGE_DELAY", "0.5"))
APPSTORE_PAGE_DELAY = float(os.getenv("REVIEWS_APPSTORE_PAGE_DELAY", "1.0"))

MAX_CONSECUTIVE_FAILURES = int(os.getenv("REVIEWS_MAX_CONSECUTIVE_FAILURES", "3"))

HTTP_TIMEOUT = float(os.getenv("REVIEWS_HTTP_TIMEOUT", "15"))

LOG_LEVEL = os.getenv("REVIEWS_LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Upstream limits
PLAY_PAGE_CEILING = 200
APPSTORE_PAGE_SIZE = 50
APPSTORE_MAX_PAGE = 10

CSV_DELIMITER = ";;"

PLAY_SORTS = ("newest", "rating", "helpfulness")
APPSTORE_SORTS = ("mostRecent", "mostHelpful")

HOST = os.getenv("REVIEWS_HOST", "127.0.0.1")
PORT = int(os.getenv("PORT", "3000"))
