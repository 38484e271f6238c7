import os

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", 8000))
RELOAD = os.getenv("RELOAD", "false").lower() in ("1", "true", "yes")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", None)

# Max members per room
ROOM_CAPACITY = int(os.getenv("ROOM_CAPACITY", 15))

# replace | replace_and_close | reject
REGISTRATION_POLICY = os.getenv("REGISTRATION_POLICY", "replace")

ALLOWED_ORIGINS = [o.strip() for o in os.getenv("ALLOWED_ORIGINS", "*").split(",") if o.strip()]
# Browsers refuse credentialed requests against a wildcard origin
ALLOW_CREDENTIALS = ALLOWED_ORIGINS != ["*"]

SSL_KEYFILE = os.getenv("SSL_KEYFILE", None)
SSL_CERTFILE = os.getenv("SSL_CERTFILE", None)
SSL_CA_CERTS = os.getenv("SSL_CA_CERTS", None)  # requires client certificates when set
