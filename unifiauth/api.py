"""Wire-level constants for the UniFi controller API."""

DEFAULT_PORT = 8443
DEFAULT_SITE = "default"
DEFAULT_TIMEOUT = 30.0

LOGIN_PATH = "/api/login"
SITES_PATH = "/api/self/sites"
STAMGR_PATH = "/api/s/{site}/cmd/stamgr"

# Fixed defaults for the guest authorization command.
GUEST_MINUTES = 60
GUEST_NAME = "Test Guest"
GUEST_EMAIL = "test@example.com"
