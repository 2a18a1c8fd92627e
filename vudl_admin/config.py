"""Settings management"""
import os
from dotenv import load_dotenv

load_dotenv()


def _split(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Config:
    # Fedora repository
    FEDORA_URL = os.getenv("FEDORA_URL")
    FEDORA_USERNAME = os.getenv("FEDORA_USERNAME")
    FEDORA_PASSWORD = os.getenv("FEDORA_PASSWORD")
    PID_NAMESPACE = os.getenv("PID_NAMESPACE", "vudl")

    # Solr
    SOLR_URL = os.getenv("SOLR_URL")
    SOLR_CORE = os.getenv("SOLR_CORE", "biblio")

    # Transport
    HTTP_TIMEOUT_SECONDS = float(os.getenv("HTTP_TIMEOUT_SECONDS", "30"))

    # Hierarchy / propagation limits
    HIERARCHY_MAX_DEPTH = int(os.getenv("HIERARCHY_MAX_DEPTH", "100"))
    STATE_PAGE_SIZE = int(os.getenv("STATE_PAGE_SIZE", "1000"))

    # Auth: bearer tokens accepted by the edit API
    API_TOKENS = _split(os.getenv("API_TOKENS", ""))

    # CORS
    ALLOWED_ORIGINS = _split(
        os.getenv("ALLOWED_ORIGINS", "http://localhost:3000,http://localhost:9000")
    )

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

config = Config()
