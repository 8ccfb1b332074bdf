# backend/salesdesk/__init__.py
from flask import Flask, request

from .config import Config
from .extensions import db, migrate


def _engine_options(uri: str, config) -> dict:
    # SQLite pools (including the in-memory StaticPool) reject size bounds
    if uri.startswith("sqlite"):
        return {}
    return {
        "pool_size": config["DB_POOL_SIZE"],
        "max_overflow": config["DB_MAX_OVERFLOW"],
        "pool_pre_ping": True,
    }


def create_app(test_config=None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    options = dict(app.config.get("SQLALCHEMY_ENGINE_OPTIONS") or {})
    options.update(_engine_options(app.config["SQLALCHEMY_DATABASE_URI"], app.config))
    app.config["SQLALCHEMY_ENGINE_OPTIONS"] = options

    app.logger.setLevel(app.config["LOG_LEVEL"])

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.products import products_bp
    from .routes.categories import categories_bp
    from .routes.customers import customers_bp
    from .routes.sales import sales_bp
    from .routes.inventory import inventory_bp
    from .routes.analytics import analytics_bp
    from .routes.admin import admin_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(categories_bp)
    app.register_blueprint(customers_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(inventory_bp)
    app.register_blueprint(analytics_bp)
    app.register_blueprint(admin_bp)

    @app.before_request
    def short_circuit_preflight():
        # Preflight never reaches authentication
        if request.method == "OPTIONS":
            return "", 200

    @app.after_request
    def add_cors_headers(response):
        response.headers["Access-Control-Allow-Origin"] = "*"
        response.headers["Access-Control-Allow-Methods"] = "GET, POST, PUT, DELETE, OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = "Content-Type, Authorization"
        return response

    from .errors import register_error_handlers
    register_error_handlers(app)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
