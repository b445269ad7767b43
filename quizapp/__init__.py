import logging
from datetime import timedelta

from flask import Flask, jsonify, request, render_template
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from werkzeug.security import generate_password_hash

from quizapp.config import Config

# Initialize extensions
db = SQLAlchemy()
migrate = Migrate()

logger = logging.getLogger(__name__)


def create_app(test_config=None):
    app = Flask(__name__)

    # 1. Configuration (environment first, then test overrides)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    logging.basicConfig(level=app.config.get("LOG_LEVEL", "INFO"))

    # 2. Admin password: hash a plain password if no hash was provided
    if not app.config.get("ADMIN_PASSWORD_HASH") and app.config.get("ADMIN_PASSWORD"):
        app.config["ADMIN_PASSWORD_HASH"] = generate_password_hash(app.config["ADMIN_PASSWORD"])

    # 3. Initialize Plugins
    db.init_app(app)
    migrate.init_app(app, db)

    # 4. Register Blueprints (Routes)
    from quizapp.routes import routes
    app.register_blueprint(routes)

    register_template_filters(app)
    register_error_handlers(app)

    # 5. Create Database Tables (if they don't exist)
    with app.app_context():
        from quizapp import models  # noqa: F401
        db.create_all()

    logger.info("Quiz app ready (database: %s)", app.config["SQLALCHEMY_DATABASE_URI"].split("://")[0])
    return app


def register_template_filters(app):
    @app.template_filter("local_time")
    def local_time(value, full=False):
        """Render a naive UTC timestamp in the configured display timezone."""
        if value is None:
            return "-"
        local = value + timedelta(hours=app.config["TIMEZONE_OFFSET_HOURS"])
        if full:
            return local.strftime("%d %B %Y, %H.%M")
        return local.strftime("%d/%m/%Y, %H.%M.%S")


def register_error_handlers(app):
    def wants_json():
        return request.path.startswith("/api/")

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["Referrer-Policy"] = "no-referrer"
        return resp

    @app.errorhandler(404)
    def not_found(error):
        if wants_json():
            return jsonify({"error": "Endpoint not found"}), 404
        return render_template("error.html", message="Halaman tidak ditemukan"), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        if wants_json():
            return jsonify({"error": "Method not allowed"}), 405
        return render_template("error.html", message="Method not allowed"), 405

    @app.errorhandler(500)
    def internal_error(error):
        logger.error("Internal server error: %s", error)
        if wants_json():
            return jsonify({"error": "Internal server error"}), 500
        return render_template("error.html", message="Terjadi kesalahan pada server"), 500
