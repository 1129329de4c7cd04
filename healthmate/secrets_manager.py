"""
Secrets and configuration for HealthMate.
Reads the completion-service credential and transport settings from the
process environment (a .env file is loaded by main.py).
"""

import os
import logging
from typing import Optional, Dict, Any

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.deepseek.com"
DEFAULT_MODEL = "deepseek-chat"
DEFAULT_TIMEOUT = 60.0
DEFAULT_SESSION_TTL = 1800.0


class SecretsManager:
    """Centralized secrets lookup with a local cache over the environment."""

    def __init__(self):
        self.local_cache: Dict[str, Any] = {}

    def get_secret(self, secret_name: str, default: Optional[str] = None,
                   use_cache: bool = True) -> Optional[str]:
        """Get secret from local cache or environment.

        Args:
            secret_name: Name of the secret (e.g., 'DEEPSEEK_API_KEY')
            default: Default value if secret not found
            use_cache: If False, always re-read the environment

        Returns:
            Secret value or default
        """
        if use_cache and secret_name in self.local_cache:
            return self.local_cache[secret_name]

        env_value = (os.environ.get(secret_name) or "").strip()
        if env_value:
            self.local_cache[secret_name] = env_value
            return env_value

        self.local_cache.pop(secret_name, None)
        return default

    def rotate_secret(self, secret_name: str, new_value: str):
        """Replace a secret in the cache and the environment."""
        self.local_cache[secret_name] = new_value
        os.environ[secret_name] = new_value
        logger.info(f"Secret {secret_name} rotated (local only)")

    def forget(self, secret_name: str):
        """Drop a cached secret so the next lookup re-reads the environment."""
        self.local_cache.pop(secret_name, None)

    def validate_required_secrets(self) -> bool:
        """Report whether the completion credential is available.

        A missing key is not fatal: each completion call reports it as a
        configuration failure instead.
        """
        if not self.get_secret("DEEPSEEK_API_KEY", use_cache=False):
            logger.warning("Missing required secret: DEEPSEEK_API_KEY")
            return False
        return True


# Global secrets manager instance
secrets_manager = SecretsManager()


def get_api_key() -> Optional[str]:
    """Get the completion-service API key (re-read on every call)."""
    return secrets_manager.get_secret("DEEPSEEK_API_KEY", use_cache=False)

def get_base_url() -> str:
    """Get the completion-service base URL."""
    return secrets_manager.get_secret("DEEPSEEK_BASE_URL", DEFAULT_BASE_URL)

def get_model_name() -> str:
    """Get the chat model name."""
    return secrets_manager.get_secret("DEEPSEEK_MODEL", DEFAULT_MODEL)

def get_timeout() -> float:
    """Get the transport timeout in seconds."""
    raw = secrets_manager.get_secret("COMPLETION_TIMEOUT")
    if raw is None:
        return DEFAULT_TIMEOUT
    try:
        value = float(raw)
    except ValueError:
        logger.warning(f"Invalid COMPLETION_TIMEOUT {raw!r}, using {DEFAULT_TIMEOUT}")
        return DEFAULT_TIMEOUT
    return value if value > 0 else DEFAULT_TIMEOUT

def get_session_ttl() -> float:
    """Get how long an idle dashboard session lives, in seconds."""
    raw = secrets_manager.get_secret("SESSION_TTL", use_cache=False)
    if raw is None:
        return DEFAULT_SESSION_TTL
    try:
        value = float(raw)
    except ValueError:
        logger.warning(f"Invalid SESSION_TTL {raw!r}, using {DEFAULT_SESSION_TTL}")
        return DEFAULT_SESSION_TTL
    return value if value > 0 else DEFAULT_SESSION_TTL

def get_secret_key() -> str:
    """Get the session cookie signing key."""
    return secrets_manager.get_secret("SECRET_KEY", "healthmate_secret")

def get_log_file() -> Optional[str]:
    """Get the optional JSON log file path."""
    return secrets_manager.get_secret("LOG_FILE")


def validate_secrets() -> bool:
    """Validate required secrets at startup."""
    return secrets_manager.validate_required_secrets()
