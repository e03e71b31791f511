"""
Rehab Platform Flask Integration

Provides an extension holding one sync client per application.

Usage:
    from flask import Flask, jsonify
    from rehab_client.integrations.flask import RehabFlask, get_rehab_client

    app = Flask(__name__)
    app.config["REHAB_API_KEY"] = "key_123"
    RehabFlask(app)

    @app.route("/patients")
    def patients():
        page = get_rehab_client().clients.list()
        return jsonify([c.full_name for c in page.data])
"""

import atexit
import logging
from typing import Any, Dict, Optional

try:
    from flask import current_app, jsonify
except ImportError as e:
    raise ImportError("Flask is required. Install with: pip install rehab-client[flask]") from e

from ..client import RehabClient
from ..config import RehabConfig, create_config
from ..errors import RehabError
from . import error_payload, error_status

logger = logging.getLogger("rehab_client.flask")

EXTENSION_KEY = "rehab"

# Flask config key -> RehabConfig field
CONFIG_KEYS: Dict[str, str] = {
    "REHAB_API_KEY": "api_key",
    "REHAB_ENVIRONMENT": "environment",
    "REHAB_BASE_URL": "base_url",
    "REHAB_TIMEOUT": "timeout",
    "REHAB_MAX_RETRY_ATTEMPTS": "max_retry_attempts",
    "REHAB_ENABLE_LOGGING": "enable_logging",
}


def config_from_app(app_config: Any) -> RehabConfig:
    """Build a RehabConfig from REHAB_* keys of a Flask config."""
    options = {field: app_config[key] for key, field in CONFIG_KEYS.items() if key in app_config}
    return create_config(**options)


class RehabFlask:
    """
    Flask extension for the Rehab Platform SDK.

    Args:
        app: Flask application instance (optional, can use init_app later)
        config: SDK configuration; defaults to REHAB_* keys of ``app.config``
    """

    def __init__(self, app: Optional[Any] = None, config: Optional[RehabConfig] = None) -> None:
        self._config = config
        if app is not None:
            self.init_app(app)

    def init_app(self, app: Any) -> None:
        """Initialize the extension with a Flask app."""
        config = self._config or config_from_app(app.config)
        client = RehabClient(config)

        app.extensions[EXTENSION_KEY] = client
        app.register_error_handler(RehabError, _handle_rehab_error)
        # One client per app, closed at exit
        atexit.register(client.close)

        logger.info(f"RehabFlask initialized (base_url={client.base_url})")

    @staticmethod
    def client_for(app: Any) -> RehabClient:
        client = app.extensions.get(EXTENSION_KEY)
        if client is None:
            raise RuntimeError("RehabFlask not initialized. Call RehabFlask(app) first.")
        return client


def get_rehab_client() -> RehabClient:
    """Client registered on the current Flask app."""
    return RehabFlask.client_for(current_app)


def _handle_rehab_error(error: RehabError) -> Any:
    logger.warning(f"Request failed: {error.kind.value}: {error.message}")
    return jsonify(error_payload(error)), error_status(error)
