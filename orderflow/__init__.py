from flask import Flask
from flask_migrate import Migrate
from orderflow.extensions import db
from orderflow.config import Config
import logging

logger = logging.getLogger(__name__)

migrate = Migrate()

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def _configure_logging(app):
    handlers = [logging.StreamHandler()]
    if app.config.get('LOG_FILE'):
        handlers.append(logging.FileHandler(app.config['LOG_FILE']))
    logging.basicConfig(
        level=logging.INFO,
        format=LOG_FORMAT,
        handlers=handlers
    )

    # Major order/payment/shipment events get their own file.
    major_logger = logging.getLogger('major_events')
    major_file = app.config.get('MAJOR_EVENTS_LOG_FILE')
    if major_file and not major_logger.handlers:
        handler = logging.FileHandler(major_file)
        formatter = logging.Formatter(
            '%(asctime)s - %(levelname)s - %(message)s')
        handler.setFormatter(formatter)
        major_logger.addHandler(handler)
        major_logger.setLevel(logging.INFO)
        major_logger.propagate = False


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    _configure_logging(app)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Register blueprints
    from orderflow.blueprints import orders, payments

    app.register_blueprint(orders.bp, url_prefix='/')
    app.register_blueprint(payments.bp, url_prefix='/')

    from orderflow.blueprints.errors import register_error_handlers
    register_error_handlers(app)

    # Note: Database tables are managed via Flask-Migrate
    # Use 'flask db upgrade' to create/update tables

    logger.info("Flask application initialized")
    return app
