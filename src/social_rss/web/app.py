"""
Flask application serving the feed and the control API.
"""

import hmac
from datetime import datetime, timezone

from flask import Flask, Response, current_app, jsonify, request

from social_rss.exceptions import AuthRequired, FeedNotFound, PassInProgress, SocialRSSError
from social_rss.logger import get_logger
from social_rss.web.serializers import api_response, status_to_dict

logger = get_logger(__name__)

RSS_CONTENT_TYPE = "application/rss+xml; charset=utf-8"

# Routes reachable without a bearer token
PUBLIC_ENDPOINTS = {"health"}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def create_app(service) -> Flask:
    """Create and configure the Flask application.

    Args:
        service: FeedService providing the publication surface

    Returns:
        Configured Flask application
    """
    app = Flask(__name__)

    config = service.config
    app.config["DEBUG"] = config.web.debug
    app.config["API_TOKEN"] = config.web.api_token
    app.config["CACHE_MAX_AGE"] = config.feed.cache_max_age
    app.extensions["feed_service"] = service

    def get_service():
        return current_app.extensions["feed_service"]

    # ========================================================================
    # Access control
    # ========================================================================

    @app.before_request
    def require_token():
        """Enforce the bearer token on every route but /health."""
        token = current_app.config.get("API_TOKEN")
        if not token or request.endpoint in PUBLIC_ENDPOINTS:
            return None

        auth = request.headers.get("Authorization", "")
        supplied = auth[len("Bearer "):] if auth.startswith("Bearer ") else ""
        if supplied and hmac.compare_digest(supplied, token):
            return None

        return jsonify({"error": "Unauthorized"}), 401

    # ========================================================================
    # Routes
    # ========================================================================

    @app.route("/feed", methods=["GET"])
    @app.route("/rss", methods=["GET"], endpoint="rss")
    def feed():
        """Latest persisted feed document."""
        try:
            document = get_service().get_feed_document()
        except FeedNotFound as e:
            return jsonify({
                "error": "RSS feed not found",
                "message": e.user_message,
            }), 404

        response = Response(document, status=200, content_type=RSS_CONTENT_TYPE)
        response.headers["Cache-Control"] = f"public, max-age={current_app.config['CACHE_MAX_AGE']}"
        return response

    @app.route("/update", methods=["POST"])
    def update():
        """Run one pass synchronously."""
        try:
            result = get_service().process_all()
        except AuthRequired as e:
            logger.warning(f"Update rejected: {e}")
            return api_response(success=False, error=e.user_message, status=503)
        except PassInProgress as e:
            body, status = api_response(success=False, error=e.user_message, status=503)
            return body, status, {"Retry-After": "30"}
        except SocialRSSError as e:
            logger.error(f"RSS update failed: {e}")
            return api_response(success=False, error=e.user_message, status=500)
        except Exception as e:
            logger.exception(f"RSS update failed unexpectedly: {e}")
            return api_response(success=False, error="RSS update failed.", status=500)

        return api_response(
            success=True,
            message="RSS feed updated successfully",
            count=result.total_items,
            location=str(result.location),
            timestamp=_now_iso(),
        )

    @app.route("/status", methods=["GET"])
    def status():
        """Service, feed file and monitoring status."""
        return jsonify(status_to_dict(get_service().get_status_snapshot()))

    @app.route("/health", methods=["GET"])
    def health():
        """Liveness check."""
        return jsonify({"status": "healthy", "timestamp": _now_iso()})

    # ========================================================================
    # Error Handlers
    # ========================================================================

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(500)
    def server_error(e):
        logger.error(f"Server error: {e}")
        return jsonify({"error": "Internal server error"}), 500

    logger.info(f"Web app created for feed at {config.feed.feed_path}")

    return app
