# Copyright (c) 2025 Damien Boisvert (AlphaGameDeveloper)
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

from flask import Flask, jsonify, request, g
from flask_cors import CORS
from sqlalchemy.exc import SQLAlchemyError
from mysql.connector import __version__ as mysql_version
import atexit
import logging
import time
import traceback

from .config import Config
from .database import db, init_db
from .discord import DiscordNotificationManager
from .errors import ValidationWorkflowError
from .utility import configure_logging
from .version import __version__

logger = logging.getLogger("giveprotocol")

def create_app(config_class=Config) -> Flask:
    """Build the Flask application: logging, database, notifier, blueprints."""
    configure_logging(config_class.LOG_LEVEL)

    app = Flask(__name__)
    app.config.from_object(config_class)

    logger.info("Give Protocol validation service version %s starting up", __version__)
    if app.config["SQLALCHEMY_DATABASE_URI"].startswith("mysql"):
        logger.info("Using MySQL Connector/Python version: %s", mysql_version)

    try:
        init_db(app)
    except SQLAlchemyError as e:
        logger.error(f"Failed to initialize database: {e}")
        raise

    notifier = DiscordNotificationManager(
        webhook_url=app.config.get("DISCORD_WEBHOOK_URL"),
        enabled=app.config.get("DISCORD_NOTIFICATIONS_ENABLED", False),
    )
    app.extensions["discord_notifier"] = notifier
    if notifier.enabled:
        atexit.register(notifier.shutdown)

    CORS(app, resources={
        "/api/*": {
            "origins": app.config.get("CORS_ORIGINS", "*")
        }
    })

    _register_request_hooks(app)
    _register_error_handlers(app)
    _register_blueprints(app)

    if notifier.enabled and not app.debug and not app.testing:
        notifier.send_startup_notification(__version__)

    return app

def _register_blueprints(app: Flask):
    from .bp.healthcheck import bp_healthcheck
    from .bp.directory import directory_bp
    from .bp.self_reported_hours import self_reported_hours_bp
    from .bp.validation_queue import validation_queue_api_bp, validation_dashboard_bp

    app.register_blueprint(bp_healthcheck, url_prefix='/')
    app.register_blueprint(directory_bp, url_prefix='/api')
    app.register_blueprint(self_reported_hours_bp, url_prefix='/api/self-reported-hours')
    app.register_blueprint(validation_queue_api_bp, url_prefix='/api/organizations')
    app.register_blueprint(validation_dashboard_bp, url_prefix='/organizations')

def _register_request_hooks(app: Flask):
    @app.before_request
    def before_request():
        g.request_start_time = time.time()
        # Trust the first X-Forwarded-For hop when running behind the proxy
        if 'X-Forwarded-For' in request.headers:
            g.remote_addr = request.headers['X-Forwarded-For'].split(',')[0].strip()
        else:
            g.remote_addr = request.remote_addr or "Unknown"

    @app.after_request
    def log_request(response):
        query_string = f"?{request.query_string.decode()}" if request.query_string else ""
        started = getattr(g, "request_start_time", time.time())
        logging.getLogger('giveprotocol.request').info(
            '%s %s%s %s %s %s "%s"',
            request.method,
            request.path,
            query_string,
            response.status_code,
            getattr(g, "remote_addr", request.remote_addr),
            f"{(time.time() - started):.2f}s",
            request.headers.get('User-Agent', 'Unknown')
        )
        return response

    @app.teardown_request
    def teardown_request(exception):
        if exception is not None:
            db.session.rollback()
            logger.warning(f"Rolling back transaction due to exception: {exception}")

def _register_error_handlers(app: Flask):
    @app.errorhandler(ValidationWorkflowError)
    def handle_workflow_error(error: ValidationWorkflowError):
        if error.status_code >= 500:
            logger.error(f"{error.__class__.__name__}: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(500)
    def handle_internal_error(error):
        tb_str = traceback.format_exc()
        logger.error(f"Internal server error: {error}\nTraceback:\n{tb_str}")

        app.extensions["discord_notifier"].send_diagnostic(
            level="error",
            service="Flask Application",
            message="Internal server error occurred",
            details={
                "Error": str(error),
                "Endpoint": request.path,
                "Method": request.method,
            }
        )

        if app.debug:
            return jsonify({
                "error": "Internal server error",
                "message": str(error),
                "traceback": tb_str,
                "endpoint": request.path,
                "method": request.method
            }), 500
        return jsonify({"error": "An internal server error occurred. Please try again later."}), 500

    @app.errorhandler(404)
    def handle_not_found(error):
        logger.warning(f"404 error: {request.path} not found")
        return jsonify({"error": "Endpoint not found"}), 404

    @app.errorhandler(405)
    def handle_method_not_allowed(error):
        return jsonify({"error": f"Method {request.method} not allowed"}), 405
