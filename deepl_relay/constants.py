"""Fixed limits of the DeepL API and of the shared dispatcher."""

APP_NAME = "deepl-relay"
APP_VERSION = "0.1.0"

# Request shape limits enforced by DeepL.
DEEPL_API_MAX_TEXTS = 50
DEEPL_API_ROUGH_MAX_REQUEST_SIZE = 128_000

DEFAULT_PRIORITY = 1
MAX_CONCURRENT = 5
MIN_INTERVAL_SECONDS = 0.2
TEST_MIN_INTERVAL_SECONDS = 0.01

HTML_TAG_HANDLING = "html"

# Keyword names the relay itself sets on every remote call.
RESERVED_API_OPTIONS = frozenset({"text", "source_lang", "target_lang", "priority"})
