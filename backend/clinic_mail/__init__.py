import os
import logging
from zoneinfo import ZoneInfo

from flask import Flask, jsonify, request, redirect
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_cors import CORS
from dotenv import load_dotenv

load_dotenv()

db = SQLAlchemy()
migrate = Migrate()

logger = logging.getLogger(__name__)

# Endpoints callable without a JSON body (cron triggers, probes)
CONTENT_TYPE_EXEMPT = ('/health', '/process')


def create_app(config=None):
    app = Flask(__name__)

    is_production = os.getenv('FLASK_ENV') == 'production'

    # Database configuration
    database_url = os.getenv('DATABASE_URL')
    if not database_url:
        raise RuntimeError('DATABASE_URL environment variable is required')

    # In production, require PostgreSQL
    if is_production and not database_url.startswith('postgresql'):
        raise RuntimeError(
            'HIPAA requires PostgreSQL in production. '
            'DATABASE_URL must start with postgresql://'
        )

    app.config['SQLALCHEMY_DATABASE_URI'] = database_url
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    if not database_url.startswith('sqlite'):
        app.config['SQLALCHEMY_ENGINE_OPTIONS'] = {
            'pool_pre_ping': True,
            'pool_recycle': 300,
        }

    # Request size limit (1 MB)
    app.config['MAX_CONTENT_LENGTH'] = 1 * 1024 * 1024

    # Scheduling configuration
    app.config['CLINIC_TIMEZONE'] = ZoneInfo(os.getenv('CLINIC_TIMEZONE', 'UTC'))
    app.config['TEMPLATE_LANGUAGE'] = os.getenv('TEMPLATE_LANGUAGE', 'de')
    app.config['DEFAULT_SENDER_EMAIL'] = os.getenv('DEFAULT_SENDER_EMAIL', 'noreply@example.com')

    if config:
        app.config.update(config)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # CORS: restrict origins
    allowed_origins = os.getenv('ALLOWED_ORIGINS', '')
    if allowed_origins:
        origins_list = [o.strip() for o in allowed_origins.split(',') if o.strip()]
    elif is_production:
        raise RuntimeError(
            'ALLOWED_ORIGINS environment variable is required in production'
        )
    else:
        # Development: allow localhost variants
        origins_list = [
            'http://localhost:*',
            'http://127.0.0.1:*',
        ]

    CORS(app, resources={
        r"/admin/*": {"origins": origins_list},
    })

    # Redirect HTTP to HTTPS in production
    if is_production:
        @app.before_request
        def enforce_https():
            if not request.is_secure and request.headers.get('X-Forwarded-Proto', 'http') != 'https':
                url = request.url.replace('http://', 'https://', 1)
                return redirect(url, code=301)

    # Security headers
    @app.after_request
    def add_security_headers(response):
        response.headers['X-Content-Type-Options'] = 'nosniff'
        response.headers['X-Frame-Options'] = 'DENY'
        response.headers['Content-Security-Policy'] = "default-src 'none'; frame-ancestors 'none'"
        response.headers['Cache-Control'] = 'no-store, no-cache, must-revalidate'
        response.headers['Pragma'] = 'no-cache'
        response.headers['Referrer-Policy'] = 'no-referrer'
        if is_production or request.is_secure:
            response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'
        return response

    # Validate Content-Type on POST/PUT requests
    @app.before_request
    def validate_content_type():
        if request.method in ('POST', 'PUT') and request.path not in CONTENT_TYPE_EXEMPT:
            content_type = request.content_type or ''
            if 'application/json' not in content_type:
                return jsonify({'success': False, 'error': 'Content-Type must be application/json'}), 415

    # Setup audit logging
    from clinic_mail.utils.audit_logger import setup_audit_logging
    setup_audit_logging(app)

    # Register blueprints
    from clinic_mail.routes.emails import emails_bp
    from clinic_mail.routes.admin import admin_bp

    app.register_blueprint(emails_bp)
    app.register_blueprint(admin_bp, url_prefix='/admin')

    # Health check endpoint
    @app.route('/health')
    def health():
        return {'status': 'healthy'}, 200

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({'success': False, 'error': 'Not found'}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({'success': False, 'error': 'Method not allowed'}), 405

    @app.errorhandler(500)
    def internal_error(error):
        return jsonify({'success': False, 'error': 'Internal server error'}), 500

    # CLI commands for cron
    @app.cli.command('process-emails')
    def process_emails():
        """Send every scheduled e-mail that is due."""
        from clinic_mail.services import get_dispatch_worker
        result = get_dispatch_worker().process_due()
        if not result['success']:
            raise SystemExit(f"Dispatch failed: {result['error']}")
        print(f"Sent {result['processed']} e-mail(s), {result['failed']} failed.")

    return app
