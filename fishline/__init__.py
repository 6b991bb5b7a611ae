from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_cors import CORS

db = SQLAlchemy()
migrate = Migrate()


def create_app(testing: bool = False, config: dict | None = None):
    app = Flask(__name__)
    from .config import Config, TestingConfig
    app.config.from_object(TestingConfig if testing else Config)
    if config:
        app.config.update(config)
    app.json.sort_keys = app.config.get("JSON_SORT_KEYS", False)
    app.logger.setLevel(app.config["LOG_LEVEL"])

    CORS(app)
    db.init_app(app)
    migrate.init_app(app, db)

    from .catalog import build_item_catalog
    app.extensions["item_catalog"] = build_item_catalog(app.config)

    from . import models  # noqa: F401
    from .routes import bp as main_bp
    from .api import api as api_bp
    app.register_blueprint(main_bp)
    app.register_blueprint(api_bp, url_prefix="/api")

    return app
