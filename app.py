import os
import logging
from datetime import timedelta

from flask import Flask, jsonify
from werkzeug.middleware.proxy_fix import ProxyFix

from extensions import db, login_manager, migrate, cors
from errors import register_error_handlers
from notification_service import NotificationSink, EmailDispatcher


def _env_flag(name, default):
    return os.environ.get(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


def load_config():
    """Read configuration from the environment."""
    environment = os.environ.get('APP_ENV', os.environ.get('FLASK_ENV', 'development'))
    production = environment == 'production'

    database_url = os.environ.get('DATABASE_URL', 'sqlite:///roombooking.db')
    # Heroku/Render style postgres:// URLs (should be postgresql://)
    if database_url.startswith('postgres://'):
        database_url = database_url.replace('postgres://', 'postgresql://', 1)

    config = {
        'APP_ENV': environment,
        'SECRET_KEY': os.environ.get('SESSION_SECRET', 'kofuku-dev-session-secret'),
        'JWT_SECRET_KEY': os.environ.get('JWT_SECRET_KEY', 'kofuku-dev-jwt-secret'),
        'SQLALCHEMY_DATABASE_URI': database_url,
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'ADMIN_EMAIL': os.environ.get('ADMIN_EMAIL', 'admin@kofuku.local'),
        'SENDGRID_API_KEY': os.environ.get('SENDGRID_API_KEY'),
        'EMAIL_FROM': os.environ.get('EMAIL_FROM', 'no-reply@kofuku.local'),
        'APP_TIMEZONE': os.environ.get('APP_TIMEZONE', 'Asia/Kolkata'),
        'CORS_ORIGINS': [origin.strip() for origin in
                         os.environ.get('CORS_ORIGINS', 'http://localhost:*').split(',')],
        'SEED_DATA': _env_flag('SEED_DATA', 'true'),
        'SESSION_COOKIE_NAME': 'kofuku.sid',
        'SESSION_COOKIE_HTTPONLY': True,
        'SESSION_COOKIE_SAMESITE': 'Lax',
        'SESSION_COOKIE_SECURE': production,
        'PERMANENT_SESSION_LIFETIME': timedelta(days=7),
    }
    if database_url.startswith('postgresql'):
        config['SQLALCHEMY_ENGINE_OPTIONS'] = {
            'pool_recycle': 300,
            'pool_pre_ping': True,
        }
    return config


def create_app(config_overrides=None):
    config = load_config()
    config.update(config_overrides or {})

    logging.basicConfig(level=logging.INFO if config['APP_ENV'] == 'production' else logging.DEBUG)

    app = Flask(__name__)
    app.config.update(config)
    app.wsgi_app = ProxyFix(app.wsgi_app, x_proto=1, x_host=1)

    cors.init_app(app, resources={r"/api/*": {"origins": app.config['CORS_ORIGINS']}},
                  supports_credentials=True)
    db.init_app(app)
    login_manager.init_app(app)
    migrate.init_app(app, db)

    mailer = EmailDispatcher()
    mailer.init_app(app)
    app.extensions['email_dispatcher'] = mailer
    app.extensions['notification_sink'] = NotificationSink()

    import auth  # noqa: F401  registers the Flask-Login loaders
    from auth_routes import auth_bp
    from api_routes import api_bp
    from admin_routes import admin_bp
    from init_data import create_initial_data, create_admin_command, seed_command

    app.register_blueprint(auth_bp)
    app.register_blueprint(api_bp)
    app.register_blueprint(admin_bp)
    register_error_handlers(app)
    app.cli.add_command(create_admin_command)
    app.cli.add_command(seed_command)

    @app.route('/')
    def index():
        return jsonify({
            'status': 'success',
            'message': 'Kofuku Room Booking API is running',
            'version': '1.0',
            'endpoints': {
                'api': '/api',
                'health': '/health'
            }
        })

    @app.route('/health')
    def health():
        return jsonify({'status': 'healthy'})

    with app.app_context():
        import models  # noqa: F401
        db.create_all()
        if app.config['SEED_DATA']:
            create_initial_data()

    app.logger.info(f"Room booking API configured ({config['APP_ENV']}, "
                    f"{app.config['SQLALCHEMY_DATABASE_URI'].split('://')[0]})")
    return app


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 5000))
    create_app().run(host="0.0.0.0", port=port, debug=False)
