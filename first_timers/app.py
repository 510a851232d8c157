from datetime import timedelta

import click
from flask import Flask, g, jsonify, request
from flask_cors import CORS
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException

from .auth import auth_bp
from .config import Config, configure_logging
from .dashboard_api import dashboard_bp
from .first_timers_api import first_timers_bp
from .follow_ups_api import follow_ups_bp
from .models import USER_ROLES, User, db, utcnow
from .notifications import mail, send_weekly_report
from .schemas import UserIn, validation_message
from .views import views_bp


def create_app(config=None):
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config:
        app.config.update(config)

    configure_logging(app.config['LOG_LEVEL'])

    db.init_app(app)
    mail.init_app(app)
    CORS(app, resources={r'/api/*': {'origins': app.config['FRONTEND_URL']}}, supports_credentials=True)

    with app.app_context():
        db.create_all()

    @app.context_processor
    def inject_user():
        return {'current_user': g.get('current_user')}

    @app.route('/health')
    def health():
        return jsonify({'status': 'healthy'})

    @app.errorhandler(HTTPException)
    def api_http_error(e):
        # JSON bodies for API paths, default HTML pages elsewhere
        if request.path.startswith('/api/') and e.code and e.code >= 400:
            return jsonify({'error': e.description}), e.code
        return e

    # ---------------- Blueprints ----------------
    app.register_blueprint(auth_bp)
    app.register_blueprint(first_timers_bp)
    app.register_blueprint(follow_ups_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(views_bp)

    # ---------------- CLI ----------------
    @app.cli.command('init-db')
    def init_db_command():
        """Create all tables."""
        db.create_all()
        click.echo('Database initialized.')

    @app.cli.command('create-user')
    @click.argument('email')
    @click.argument('password')
    @click.option('--first-name', default='Admin')
    @click.option('--last-name', default='User')
    @click.option('--role', type=click.Choice(USER_ROLES), default='admin')
    def create_user_command(email, password, first_name, last_name, role):
        """Create a user with any role; the only way to mint admins and staff."""
        try:
            body = UserIn(email=email, password=password, first_name=first_name, last_name=last_name, role=role)
        except ValidationError as e:
            raise click.ClickException(validation_message(e))
        try:
            user = User(email=body.email, first_name=body.first_name, last_name=body.last_name, role=body.role)
            user.set_password(body.password)
            db.session.add(user)
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise click.ClickException(f'A user with email {email} already exists.')
        click.echo(f'Created {role} {user.email} (id {user.id}).')

    @app.cli.command('weekly-report')
    @click.option('--days', default=7, show_default=True, help='Window to summarize.')
    def weekly_report_command(days):
        """Email the weekly first-timer summary to ADMIN_EMAIL."""
        stats, sent = send_weekly_report(utcnow() - timedelta(days=days))
        click.echo(
            f"New: {stats['totalNew']}  visiting members: {stats['visitingMembers']}  "
            f"students: {stats['students']}  ({'sent' if sent else 'not sent'})"
        )

    return app
