import os
import logging
from flask import Flask, jsonify, url_for
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from dotenv import load_dotenv
from werkzeug.exceptions import HTTPException

from .config import DevConfig, ProdConfig, TestConfig
from .grid.errors import GridError

# Initialize extensions
db = SQLAlchemy()
migrate = Migrate()

CONFIGS = {
    'development': DevConfig,
    'testing': TestConfig,
    'production': ProdConfig,
}


def create_app(config_name: str | None = None) -> Flask:
    """Application factory with environment based configuration."""
    load_dotenv()

    app = Flask(__name__, instance_relative_config=True)
    os.makedirs(app.instance_path, exist_ok=True)

    # Pick configuration
    env = config_name or os.getenv('ENV') or os.getenv('FLASK_ENV') or 'production'
    app.config.from_object(CONFIGS.get(env, ProdConfig))

    # Initialise logging
    logging.basicConfig(level=logging.DEBUG if app.debug else logging.INFO)

    db.init_app(app)
    migrate.init_app(app, db)

    # Ensure models loaded so tables can be created
    from quotegrid import models  # noqa
    with app.app_context():
        db.create_all()

    @app.route('/')
    def index():
        return jsonify(
            service='quotegrid',
            quotes=url_for('quotes.list_quotes'),
            health=url_for('health'),
        )

    @app.route('/health')
    def health():
        return jsonify(status='ok')

    @app.errorhandler(GridError)
    def grid_error(e):
        logging.warning("Rejected grid request: %s", e)
        return jsonify(error=str(e)), 400

    @app.errorhandler(HTTPException)
    def http_error(e):
        return jsonify(error=e.description), e.code

    @app.errorhandler(500)
    def server_error(_):
        return jsonify(error='internal server error'), 500

    from quotegrid.layout.routes import bp as layout_bp
    from quotegrid.quotes.routes import bp as quotes_bp
    from quotegrid.cli import quotegrid_cli

    app.register_blueprint(layout_bp, url_prefix='/layout')
    app.register_blueprint(quotes_bp, url_prefix='/quotes')
    app.cli.add_command(quotegrid_cli)

    return app
