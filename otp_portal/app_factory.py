# otp_portal/app_factory.py
from flask import Flask, jsonify
from flask_login import LoginManager
from werkzeug.middleware.proxy_fix import ProxyFix
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from otp_portal.init_db import db
from otp_portal.errors import PortalError, InvalidToken, UserNotFound
from otp_portal.logging_config import setup_logging
from otp_portal.authentication import tokens
from otp_portal.authentication.views import get_user


def create_app(config_class='otp_portal.config.Config'):
    app = Flask(__name__)
    app.config.from_object(config_class)

    logger = setup_logging(__name__, tz_name=app.config.get('LOG_TIMEZONE'))

    if not app.config.get('JWT_SECRET_KEY'):
        app.config['JWT_SECRET_KEY'] = app.config['SECRET_KEY']
        if not app.testing:
            logger.warning("JWT_SECRET_KEY is not set; issued tokens will not survive a restart "
                           "or be accepted by other workers.")

    hops = app.config.get('TRUSTED_PROXY_HOPS', 0)
    if hops:
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=hops)

    db.init_app(app)

    login_manager = LoginManager()
    login_manager.init_app(app)

    @login_manager.request_loader
    def load_user_from_request(request):
        token = tokens.bearer_token(request)
        if not token:
            return None
        try:
            claims = tokens.verify(token, role=tokens.ROLE_USER)
            return get_user(claims.get('sub'))
        except (InvalidToken, UserNotFound):
            return None

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'success': False, 'message': 'Not authorized, token failed'}), 401

    @app.errorhandler(PortalError)
    def handle_portal_error(error):
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(error):
        db.session.rollback()
        logger.error(f"Database error: {error}")
        return jsonify({'success': False, 'message': 'An internal server error occurred.'}), 500

    # Import and register blueprints
    from otp_portal.authentication.routes import auth_bp, user_bp
    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(user_bp, url_prefix='/api/user')

    from otp_portal.admin.routes import admin_bp
    app.register_blueprint(admin_bp, url_prefix='/api/admin')

    with app.app_context():
        try:
            db.create_all()
        except OperationalError as e:
            logger.error(f"OperationalError during database initialization: {e}")

    return app
