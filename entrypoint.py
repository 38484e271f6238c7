import ssl

import uvicorn
from constants import HOST, LOG_FILE, LOG_LEVEL, PORT, RELOAD, SSL_CA_CERTS, SSL_CERTFILE, SSL_KEYFILE
from logging_config import setup_logging

# Setup logging before importing app
setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)

from logging_config import get_logger

logger = get_logger(__name__)


def ssl_options() -> dict:
    """uvicorn TLS settings; client certificates are required once a CA bundle is configured."""
    if not (SSL_KEYFILE and SSL_CERTFILE):
        return {}
    options = {"ssl_keyfile": SSL_KEYFILE, "ssl_certfile": SSL_CERTFILE}
    if SSL_CA_CERTS:
        options["ssl_ca_certs"] = SSL_CA_CERTS
        options["ssl_cert_reqs"] = ssl.CERT_REQUIRED
    return options


if __name__ == "__main__":
    options = ssl_options()
    scheme = "wss" if options else "ws"
    logger.info(f"Starting signal relay on {scheme}://{HOST}:{PORT}/ws")
    uvicorn.run("app:app", host=HOST, port=PORT, reload=RELOAD, **options)
