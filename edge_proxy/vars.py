import os

SERVICE_NAME = os.getenv("SERVICE_NAME", "edge-proxy")

# JSON object file mapping platform key -> origin; empty uses the built-in table
PLATFORMS_FILE = os.environ.get("PLATFORMS_FILE", "")

# Public-facing origin for redirect rewrites (e.g. behind a TLS terminator)
PUBLIC_URL = os.environ.get("PUBLIC_URL", "").rstrip("/")
PROXY_TIMEOUT = float(os.environ.get("PROXY_TIMEOUT", "300"))  # 5 minutes default
PROXY_USER_AGENT = os.environ.get("PROXY_USER_AGENT", "")

LOG_REQUEST_HEADERS = os.getenv("LOG_REQUEST_HEADERS", "false").lower() == "true"

OTLP_ENDPOINT = os.getenv("OTLP_ENDPOINT")
OTLP_HEADERS = os.getenv("OTLP_HEADERS", "")
