# backend/backoffice/__init__.py
from flask import Flask, jsonify, request

from .config import Config
from .errors import ServiceError
from .extensions import db, migrate



def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.inventory import inventory_bp
    from .routes.customers import customers_bp
    from .routes.bills import bills_bp
    from .routes.work_orders import work_orders_bp
    from .routes.bank_accounts import bank_accounts_bp
    from .routes.notifications import notifications_bp
    from .routes.dashboard import dashboard_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(inventory_bp)
    app.register_blueprint(customers_bp)
    app.register_blueprint(bills_bp)
    app.register_blueprint(work_orders_bp)
    app.register_blueprint(bank_accounts_bp)
    app.register_blueprint(notifications_bp)
    app.register_blueprint(dashboard_bp)

    @app.errorhandler(ServiceError)
    def handle_service_error(e: ServiceError):
        return jsonify(e.to_dict()), e.status_code

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in app.config["CORS_ALLOWED_ORIGINS"]:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
