"""Presence Verification Service - Application Factory."""
import logging
import os

from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_jwt_extended import JWTManager
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

# Initialize extensions
db = SQLAlchemy()
migrate = Migrate()
jwt = JWTManager()
limiter = Limiter(key_func=get_remote_address)


def create_app(config_name: str = None) -> Flask:
    """Application factory pattern."""
    app = Flask(__name__)

    # Load configuration
    from presence.config import get_config
    app.config.from_object(get_config(config_name))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    limiter.init_app(app)

    # Configure CORS
    CORS(app, origins=app.config.get('CORS_ORIGINS', ["*"]))

    # Setup logging
    setup_logging(app)

    # Validators and orchestrator
    from presence.services import VerificationCore
    VerificationCore(app)

    # Register blueprints
    register_blueprints(app)

    # Register error handlers
    register_error_handlers(app)

    # Setup database
    setup_database(app)

    # Add CLI commands
    register_commands(app)

    @app.route('/health')
    def health_check():
        return jsonify({
            'status': 'healthy',
            'service': 'Presence Verification Service',
            'version': '1.0.0'
        })

    return app


def register_blueprints(app: Flask) -> None:
    """Register all application blueprints."""
    from presence.api.attendance import attendance_bp
    from presence.api.sessions import sessions_bp
    from presence.api.enrollments import enrollments_bp

    app.register_blueprint(attendance_bp, url_prefix='/api/attendance')
    app.register_blueprint(sessions_bp, url_prefix='/api/sessions')
    app.register_blueprint(enrollments_bp, url_prefix='/api/enrollments')


def register_error_handlers(app: Flask) -> None:
    """Register error handlers."""
    from werkzeug.exceptions import HTTPException
    from presence.utils.errors import PresenceError
    from presence.utils.helpers import error_response, handle_error

    @app.errorhandler(PresenceError)
    def handle_presence_error(error):
        if error.status_code >= 500:
            db.session.rollback()
            app.logger.error('Unhandled service error: %s', error.message)
        return handle_error(error, error.status_code)

    @app.errorhandler(HTTPException)
    def handle_http_exception(e):
        return handle_error(e, e.code)

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        return error_response('Internal server error', 500)

    # JWT error handlers
    @jwt.expired_token_loader
    def expired_token_callback(jwt_header, jwt_payload):
        return error_response('Token has expired', 401)

    @jwt.invalid_token_loader
    def invalid_token_callback(error):
        return error_response('Invalid token', 401)

    @jwt.unauthorized_loader
    def missing_token_callback(error):
        return error_response('Authorization token required', 401)


def setup_logging(app: Flask) -> None:
    """Setup application logging."""
    app.logger.setLevel(app.config.get('LOG_LEVEL', 'INFO'))

    if not app.debug and not app.testing:
        log_dir = os.path.dirname(app.config.get('LOG_FILE', 'logs/app.log'))
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir)

        file_handler = logging.FileHandler(app.config.get('LOG_FILE', 'logs/app.log'))
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
        ))
        file_handler.setLevel(logging.INFO)
        app.logger.addHandler(file_handler)

        app.logger.info('Presence Verification Service startup')


def setup_database(app: Flask) -> None:
    """Register models with the metadata."""
    with app.app_context():
        from presence import models  # noqa: F401


def register_commands(app: Flask) -> None:
    """Register CLI commands."""
    import click

    @app.cli.command('init-db')
    @click.option('--drop', is_flag=True, help='Drop existing tables')
    def init_db(drop):
        """Initialize the database."""
        if drop:
            db.drop_all()
            click.echo('Dropped all tables.')

        db.create_all()
        click.echo('Created all tables.')

    @app.cli.command('create-admin')
    @click.option('--email', prompt='Admin email')
    @click.option('--name', prompt='Admin name')
    @click.option('--super-admin', is_flag=True, help='Grant global override rights')
    @click.option('--organization-id', type=int, default=None)
    def create_admin(email, name, super_admin, organization_id):
        """Create admin user."""
        from presence.models.user import User, UserRole

        if User.query.filter_by(email=email.lower().strip()).first():
            raise click.ClickException(f'User already exists: {email}')

        admin = User(
            email=email.lower().strip(),
            name=name,
            role=UserRole.SUPER_ADMIN if super_admin else UserRole.ADMIN,
            organization_id=organization_id
        )
        admin.save()
        click.echo(f'Admin user created: {email}')

    @app.cli.command('rotate-tokens')
    def rotate_tokens():
        """Issue a fresh venue token for every running session."""
        from presence.models.event_session import EventSession
        from presence.services import get_core

        tokens = get_core().tokens
        rotated = 0
        for session in EventSession.query.filter_by(is_active=True, requires_qr=True).all():
            if session.is_running():
                tokens.issue(session.id)
                rotated += 1
        click.echo(f'Rotated tokens for {rotated} session(s).')
