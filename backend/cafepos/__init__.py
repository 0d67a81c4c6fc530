# backend/cafepos/__init__.py
from flask import Flask, jsonify

from .config import Config
from .extensions import db, migrate


def create_app(config_object=None, **overrides) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_object or Config)
    app.config.update(overrides)

    app.logger.setLevel(app.config["LOG_LEVEL"])

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    from .context import EXTENSION_KEY, build_engine
    app.extensions[EXTENSION_KEY] = build_engine(app.config)

    # Register blueprints
    from .routes.system import system_bp
    from .routes.products import products_bp
    from .routes.discounts import discounts_bp
    from .routes.inventory import inventory_bp
    from .routes.orders import orders_bp
    from .routes.analytics import analytics_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(discounts_bp)
    app.register_blueprint(inventory_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(analytics_bp)

    @app.errorhandler(404)
    def not_found(_e):
        return jsonify({"error": "Not found", "code": "NOT_FOUND", "details": {}}), 404

    @app.errorhandler(500)
    def internal_error(_e):
        # Flask has already logged the original exception
        db.session.rollback()
        return jsonify({"error": "Internal server error", "code": "INTERNAL_ERROR", "details": {}}), 500

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
