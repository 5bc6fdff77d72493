# constants.py - Define constants used throughout the application

VERSION = "0.3.0"

# --- File/Directory Names ---
PAGE_HTML_FILENAME = "page.html"
PAGE_MARKDOWN_FILENAME = "page.md"
INFO_JSON_FILENAME = "info.json"
IMAGES_DIR_NAME = "images"
UNTITLED_FILENAME = "untitled" # Fallback for sanitized filenames
DEFAULT_OUTPUT_DIR = "output" # Used only when the URL host sanitizes to nothing
PDF_EXTENSION = ".pdf"

# --- Asset Naming ---
SYNTHETIC_ASSET_PREFIX = "image" # Base for assets whose URL has no usable file name
SYNTHETIC_HASH_LENGTH = 10
FALLBACK_ASSET_EXTENSION = ".bin"

# --- Limits ---
FILENAME_MAX_LENGTH = 100 # Max length for sanitized filenames (excluding extension)
FILENAME_COLLISION_LIMIT = 1000 # Max attempts for finding unique filename with counter

# --- Request Defaults ---
DEFAULT_USER_AGENT = "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/115.0.0.0 Safari/537.36"
DEFAULT_REQUEST_DELAY = 1.0 # Base backoff delay in seconds
DEFAULT_MAX_RETRIES = 3
DEFAULT_TIMEOUT = 30 # Per-request timeout in seconds
DEFAULT_MAX_CONCURRENT_DOWNLOADS = 8
DEFAULT_RUN_TIMEOUT = None # No run-level deadline unless configured
SUPPORTED_SCHEMES = ("http", "https")

# --- Conversion ---
MARKDOWN_ENGINES = ("pandoc", "html2text")
DEFAULT_MARKDOWN_ENGINE = "pandoc"
DEFAULT_PANDOC_MARKDOWN_FORMAT = "gfm-raw_html"
DEFAULT_PDF_ENGINE = "wkhtmltopdf"

# --- Logging ---
DEFAULT_LOG_FILE = None # Console only
DEFAULT_LOG_LEVEL = "INFO"
LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'

# --- Exit Codes ---
EXIT_OK = 0
EXIT_UNEXPECTED = 1
EXIT_INVALID_URL = 2
EXIT_NETWORK = 3
EXIT_CONVERSION = 4
EXIT_FILESYSTEM = 5
EXIT_INTERRUPTED = 130
