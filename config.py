import os
from dotenv import load_dotenv

load_dotenv(override=True)


def _parse_psi_base_url():
    """Build the Psi backend base URL, handling PSI_HOST with or without port/scheme."""
    raw_host = os.getenv("PSI_HOST", "127.0.0.1")
    port = os.getenv("PSI_PORT", "5000")
    scheme = "http"

    # Keep an explicit scheme (e.g. "https://psi.local:5000")
    if "://" in raw_host:
        scheme, raw_host = raw_host.split("://", 1)

    raw_host = raw_host.rstrip("/")

    # Port already included in host (e.g. "192.168.1.14:5000") wins
    if ":" in raw_host:
        host, port = raw_host.rsplit(":", 1)
    else:
        host = raw_host

    return host, int(port), f"{scheme}://{host}:{port}"


class Config:
    # Flask
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")
    DEBUG = os.getenv("FLASK_DEBUG", "false").lower() == "true"
    HOST = os.getenv("FLASK_HOST", "0.0.0.0")
    PORT = int(os.getenv("FLASK_PORT", "8080"))

    # Psi backend (emotion computation + replies)
    PSI_HOST, PSI_PORT, PSI_BASE_URL = _parse_psi_base_url()
    PSI_REQUEST_TIMEOUT = float(os.getenv("PSI_REQUEST_TIMEOUT", "30"))

    # Shown in place of a reply when the backend cannot be reached
    FALLBACK_REPLY = os.getenv(
        "FALLBACK_REPLY",
        "I'm currently unable to process messages. "
        "Please ensure the backend server is running.",
    )

    # How long an HTTP handler waits on the session loop
    LOOP_CALL_TIMEOUT = float(os.getenv("LOOP_CALL_TIMEOUT", "60"))

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
