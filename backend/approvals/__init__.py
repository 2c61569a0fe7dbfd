from flask import Flask
from werkzeug.exceptions import HTTPException
from flask_jwt_extended import JWTManager
from sqlalchemy import create_engine, event
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm import sessionmaker, scoped_session
from dotenv import load_dotenv
from typing import Optional, Dict, Any
import os

load_dotenv()

db_engine = None
SessionLocal = None
jwt = JWTManager()


def _enable_sqlite_savepoints(engine):
    # pysqlite defers BEGIN on its own; hand it to SQLAlchemy so SAVEPOINT is reliable
    @event.listens_for(engine, 'connect')
    def _connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, 'begin')
    def _begin(conn):
        conn.exec_driver_sql('BEGIN')


def create_app(config: Optional[Dict[str, Any]] = None):
    global db_engine, SessionLocal
    app = Flask(__name__)

    app.config['JWT_SECRET_KEY'] = os.getenv('JWT_SECRET_KEY', 'dev-secret')
    app.config['DATABASE_URL'] = os.getenv('DATABASE_URL', 'sqlite:///dev.db')
    app.config['EVIDENCE_DIR'] = os.getenv('EVIDENCE_DIR', os.path.join(os.getcwd(), 'evidence'))
    app.config['EVIDENCE_MAX_BYTES'] = int(os.getenv('EVIDENCE_MAX_BYTES', str(5 * 1024 * 1024)))

    if config:
        # allow tests or callers to override default config values
        app.config.update(config)

    # Database
    db_url = app.config['DATABASE_URL']
    if db_url.endswith(':memory:'):
        # Ensure a single shared in-memory SQLite database across all sessions
        db_engine = create_engine(
            db_url,
            echo=False,
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        db_engine = create_engine(db_url, echo=False, future=True)
    if db_engine.dialect.name == 'sqlite':
        _enable_sqlite_savepoints(db_engine)
    SessionLocal = scoped_session(sessionmaker(bind=db_engine, expire_on_commit=False, autoflush=False))

    jwt.init_app(app)

    # Collaborators: notification sink and payment-evidence storage
    from .services.notifications import LoggingNotifier
    from .services.evidence import LocalEvidenceStore
    app.extensions['approvals.notifier'] = app.config.get('NOTIFIER') or LoggingNotifier()
    app.extensions['approvals.evidence_store'] = app.config.get('EVIDENCE_STORE') or LocalEvidenceStore(app.config['EVIDENCE_DIR'])

    from .routes.auth import auth_bp
    from .routes.requests import requests_bp
    from .routes.enrollments import enrollments_bp
    from .routes.cart import cart_bp
    from .routes.managers import managers_bp
    from .routes.audit import audit_bp
    app.register_blueprint(auth_bp, url_prefix='/auth')
    app.register_blueprint(requests_bp, url_prefix='/requests')
    app.register_blueprint(enrollments_bp, url_prefix='/enrollments')
    app.register_blueprint(cart_bp, url_prefix='/cart')
    app.register_blueprint(managers_bp, url_prefix='/managers')
    app.register_blueprint(audit_bp, url_prefix='/audit')

    @app.route('/healthz')
    def health():
        return {'status': 'ok'}

    # Unified error handler producing standardized JSON shape
    from .errors import ApprovalsError

    @app.errorhandler(Exception)
    def handle_errors(e):  # type: ignore
        if isinstance(e, ApprovalsError):
            get_db().rollback()
            if e.status >= 500:
                app.logger.error('%s: %s', e.title, e.detail)
            return e.to_payload(), e.status
        if isinstance(e, HTTPException):
            payload = {
                'error': {
                    'status': e.code,
                    'title': e.name,
                    'detail': e.description,
                }
            }
            return payload, e.code
        # Unhandled exception
        app.logger.exception('Unhandled exception')
        get_db().rollback()
        return {
            'error': {
                'status': 500,
                'title': 'Internal Server Error',
                'detail': 'Unexpected error'
            }
        }, 500

    from .openapi import build_openapi_spec

    @app.route('/openapi.json')
    def openapi_spec():
        return build_openapi_spec()

    return app


def get_db():
    return SessionLocal()
