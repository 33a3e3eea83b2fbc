"""Main Flask application."""

import logging
import os
from datetime import UTC, datetime

from flask import Flask, jsonify

from ai_agent import __version__
from ai_agent.blueprints.chat import chat_bp
from ai_agent.blueprints.skills import skills_bp
from ai_agent.config import Config, DevelopmentConfig
from ai_agent.llm import ConfigurationError, get_gateway, init_gateway
from ai_agent.skills import init_skill_execution_service, init_skill_store

logger = logging.getLogger(__name__)

SERVICE_NAME = "ai-agent"
CAPABILITIES = {
    "streaming": True,
    "multiProvider": True,
    "skills": True,
}


def _timestamp() -> str:
    return datetime.now(UTC).isoformat()


def create_app(config_class: type = Config) -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_class)

    # Without a gateway /status answers 500; the catalog stays up
    try:
        init_gateway(app)
    except ConfigurationError as e:
        logger.error(f"Completion gateway could not be initialized: {e}")

    init_skill_store(app)
    init_skill_execution_service(app)

    app.register_blueprint(skills_bp)
    app.register_blueprint(chat_bp)

    @app.route("/health")
    def health_check():
        """Liveness endpoint."""
        return jsonify({"status": "ok", "service": SERVICE_NAME, "timestamp": _timestamp()})

    @app.route("/status")
    def status():
        """Detailed status including provider health."""
        gateway = get_gateway()
        if gateway is None:
            logger.error("Status check failed: completion gateway not initialized")
            return (
                jsonify(
                    {
                        "status": "error",
                        "service": SERVICE_NAME,
                        "error": "Completion gateway not initialized",
                    }
                ),
                500,
            )

        health = gateway.health_check_all()
        return jsonify(
            {
                "status": "ok",
                "service": SERVICE_NAME,
                "version": __version__,
                "timestamp": _timestamp(),
                "providers": {provider: h.to_dict() for provider, h in health.items()},
                "capabilities": CAPABILITIES,
            }
        )

    return app


if __name__ == "__main__":
    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = create_app(DevelopmentConfig if os.environ.get("FLASK_DEBUG") == "true" else Config)
    app.run(
        host=os.environ.get("HOST", "127.0.0.1"),
        port=int(os.environ.get("PORT", "3020")),
        debug=os.environ.get("FLASK_DEBUG", "false").lower() == "true",
    )
