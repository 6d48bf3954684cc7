"""Project-wide constants (fingerprint format, API defaults)."""

FINGERPRINT_LENGTH: int = 32  # hex chars kept from the SHA-256 digest
HASH_READ_BLOCK_SIZE: int = 64 * 1024

DEFAULT_API_URL = "https://api.cloudflare.com/client/v4"
DEFAULT_TIMEOUT_SECONDS: float = 30.0
DEFAULT_MAX_CONCURRENT_UPLOADS: int = 3

DEFAULT_MAIN_MODULE = "index.mjs"
DEFAULT_COMPATIBILITY_DATE = "2022-03-11"
DEFAULT_ASSETS_BINDING = "ASSETS"
MODULE_CONTENT_TYPE = "application/javascript+module"
DEFAULT_ASSET_CONTENT_TYPE = "application/octet-stream"

FALLBACK_SCRIPT = (
    "export default {async fetch(request, env) "
    "{ return new Response('Hello world from user worker!'); }}"
)

API_TOKEN_ENV = "CLOUDFLARE_API_TOKEN"
