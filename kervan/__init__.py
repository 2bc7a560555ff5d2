from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException
from kervan.extensions import db, migrate, login_manager
from kervan.config import Config
from kervan.middleware import setup_maintenance_middleware
import click
import logging

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler('app.log'),
        logging.StreamHandler()
    ]
)

logger = logging.getLogger(__name__)


def register_auth(app):
    from kervan.models import User
    from kervan.services.token_service import bearer_token, decode_access_token

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @login_manager.request_loader
    def load_user_from_request(req):
        token = bearer_token(req.headers.get('Authorization'))
        if not token:
            return None
        user_id = decode_access_token(token)
        if user_id is None:
            return None
        user = db.session.get(User, user_id)
        if user is None or not user.is_active:
            return None
        return user

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': 'Not logged in', 'login_required': True}), 401


def register_error_handlers(app):
    from kervan.utils import ApiError

    @app.errorhandler(ApiError)
    def handle_api_error(e):
        db.session.rollback()
        logger.info("%s %s rejected: %s", request.method, request.path,
                    e.message)
        return e.to_response()

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return jsonify({'error': e.description or e.name}), e.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(e):
        db.session.rollback()
        logger.exception("Unhandled error on %s %s", request.method,
                         request.path)
        return jsonify({'error': 'Internal server error'}), 500


def register_commands(app):

    @app.cli.command('cleanup-reset-tokens')
    def cleanup_reset_tokens():
        """Delete expired or used password reset tokens."""
        from kervan.models import PasswordResetToken

        removed = PasswordResetToken.cleanup_expired()
        db.session.commit()
        logger.info("Removed %d password reset tokens", removed)
        click.echo(f'Removed {removed} password reset tokens')


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)

    register_auth(app)

    # Register blueprints
    from kervan.blueprints import (
        admin,
        auth,
        cart,
        categories,
        orders,
        payments,
        products,
        settings,
        shipping,
    )

    # Blueprints use absolute /api/... routes.
    app.register_blueprint(auth.bp)
    app.register_blueprint(products.bp)
    app.register_blueprint(categories.bp)
    app.register_blueprint(cart.bp)
    app.register_blueprint(orders.bp)
    app.register_blueprint(admin.bp)
    app.register_blueprint(settings.bp)
    app.register_blueprint(shipping.bp)
    app.register_blueprint(payments.bp)

    setup_maintenance_middleware(app)
    register_error_handlers(app)
    register_commands(app)

    @app.route('/api/health', methods=['GET'])
    def health():
        return jsonify({'ok': True})

    # Note: Database tables are managed via Flask-Migrate
    # Use 'flask db upgrade' to create/update tables

    logger.info("Flask application initialized")
    return app
