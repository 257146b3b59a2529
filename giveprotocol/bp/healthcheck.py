# Copyright (c) 2025 Damien Boisvert (AlphaGameDeveloper)
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

from flask import Blueprint, current_app, jsonify, request, make_response
from datetime import datetime, timedelta, timezone
from sqlalchemy import text
from ..database import db
from ..version import __version__
from typing import Dict, Any
import os

bp_healthcheck = Blueprint('healthcheck', __name__)

# Per-process cache; each Gunicorn worker keeps its own.
_healthcheck_cache: Dict[str, Any] = {
    "response": None,
    "timestamp": None,
    "status_code": None
}

class Healthcheck:
    def __init__(self, app, os_env):
        self.app = app
        self.os_env = os_env
        self.overall_healthy = True
        self.result = {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": __version__,
            "checks": {},
            "environment": "development" if app.debug else "production"
        }

    def run(self):
        self.check_database()
        self.check_discord()
        self.check_environment()
        self.result["status"] = "healthy" if self.overall_healthy else "unhealthy"
        return self.result, self.overall_healthy

    def check_database(self):
        check = {"status": "unset", "message": "Message not set", "details": {}}
        self.result["checks"]["database"] = check
        try:
            db.session.execute(text("SELECT 1"))
            check["status"] = "healthy"
            check["message"] = "Database connection is healthy"
            check["details"]["dialect"] = db.engine.dialect.name
        except Exception as e:
            db.session.rollback()
            check["status"] = "unhealthy"
            check["message"] = f"Database connection failed: {str(e)}"
            self.overall_healthy = False

    def check_discord(self):
        notifier = self.app.extensions.get("discord_notifier")
        configured = bool(notifier is not None and notifier.enabled)
        self.result["checks"]["discord"] = {
            "status": "healthy" if configured and notifier.is_healthy() else "degraded",
            "message": "Discord notifications configured" if configured else "Discord notifications not configured",
            "details": {
                "webhook_configured": configured,
                "queue_size": notifier.get_queue_size() if notifier is not None else 0
            }
        }

    def check_environment(self):
        required_vars = [] if self.app.testing else ["SECRET_KEY"]
        optional_vars = ["DISCORD_WEBHOOK_URL", "MYSQL_HOST", "MYSQL_DATABASE"]
        missing_required = [var for var in required_vars if not self.os_env.get(var)]
        missing_optional = [var for var in optional_vars if not self.os_env.get(var)]
        env_status = "healthy"
        if missing_required:
            env_status = "unhealthy"
            self.overall_healthy = False
        elif missing_optional:
            env_status = "degraded"
        self.result["checks"]["environment"] = {
            "status": env_status,
            "message": "Environment variables configured properly" if env_status == "healthy" else "Some environment variables missing",
            "details": {
                "missing_required": missing_required,
                "missing_optional": missing_optional,
                "all_required_present": len(missing_required) == 0
            }
        }

@bp_healthcheck.route("/api/health")
@bp_healthcheck.route("/api/healthcheck")
@bp_healthcheck.route("/health")
@bp_healthcheck.route("/healthcheck")
def health():
    """Health of the database, Discord notifier and environment; ?c=1 allows a cached answer."""
    use_cache = request.args.get("c") == "1"
    now = datetime.now(timezone.utc)
    cache_valid = (
        _healthcheck_cache["response"] is not None and
        _healthcheck_cache["timestamp"] is not None and
        (now - _healthcheck_cache["timestamp"]) < timedelta(minutes=1)
    )

    if use_cache and cache_valid:
        resp = make_response(jsonify(_healthcheck_cache["response"]), _healthcheck_cache["status_code"])
        resp.headers["X-Cache"] = "HIT"
        return resp

    hc = Healthcheck(current_app, os.environ)
    health_status, overall_healthy = hc.run()
    status_code = 200 if overall_healthy else 503

    _healthcheck_cache["response"] = health_status
    _healthcheck_cache["timestamp"] = now
    _healthcheck_cache["status_code"] = status_code

    resp = make_response(jsonify(health_status), status_code)
    resp.headers["X-Cache"] = "MISS"
    return resp

@bp_healthcheck.route("/")
def index():
    return "All systems operational. API is running."
