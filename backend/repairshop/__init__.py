from flask import Flask
from werkzeug.exceptions import HTTPException
from flask_jwt_extended import JWTManager
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm import sessionmaker, scoped_session
from dotenv import load_dotenv
from typing import Optional, Dict, Any

from .config.settings import env_settings
from .errors import error_payload

load_dotenv()

db_engine = None
SessionLocal = None
jwt = JWTManager()


@jwt.unauthorized_loader
def _missing_token(reason: str):
    return error_payload(401, 'Unauthorized', reason), 401


@jwt.invalid_token_loader
def _invalid_token(reason: str):
    return error_payload(401, 'Unauthorized', reason), 401


@jwt.expired_token_loader
def _expired_token(jwt_header, jwt_payload):
    return error_payload(401, 'Unauthorized', 'Token has expired'), 401


def create_app(config: Optional[Dict[str, Any]] = None):
    global db_engine, SessionLocal
    app = Flask(__name__)

    app.config.update(env_settings())

    if config:
        # allow tests or callers to override default config values
        app.config.update(config)

    app.logger.setLevel(app.config['LOG_LEVEL'])

    # Fail fast on unknown workflow policy names
    from .services.workflow import WorkflowPolicy
    policy = WorkflowPolicy.from_config(app.config)
    app.logger.info('Order workflow policy: closed=%s transitions=%s', policy.closed, policy.transitions)

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
    SessionLocal = scoped_session(sessionmaker(bind=db_engine, expire_on_commit=False, autoflush=False))

    jwt.init_app(app)

    from .routes.auth import auth_bp
    from .routes.orders import orders_bp
    from .routes.customers import customers_bp
    from .routes.branches import branches_bp
    from .routes.catalog import catalog_bp
    from .routes.accounting import accounting_bp
    app.register_blueprint(auth_bp, url_prefix='/api')
    app.register_blueprint(orders_bp, url_prefix='/api/orders')
    app.register_blueprint(customers_bp, url_prefix='/api/customers')
    app.register_blueprint(branches_bp, url_prefix='/api/branches')
    app.register_blueprint(catalog_bp, url_prefix='/api/catalog')
    app.register_blueprint(accounting_bp, url_prefix='/api/accounting')

    @app.route('/healthz')
    def health():
        return {'status': 'ok'}

    @app.route('/api/ping')
    def ping():
        return {'status': 'ok', 'message': 'pong'}

    # Unified error handler producing standardized JSON shape
    @app.errorhandler(Exception)
    def handle_errors(e):  # type: ignore
        # A failed request must leave stored state untouched
        if SessionLocal is not None:
            SessionLocal().rollback()
        if isinstance(e, HTTPException):
            return error_payload(e.code, e.name, e.description), e.code
        app.logger.exception('Unhandled exception')
        return error_payload(500, 'Internal Server Error', 'Unexpected error'), 500

    from .openapi import build_openapi_spec

    @app.route('/openapi.json')
    def openapi_spec():
        return build_openapi_spec()

    @app.route('/docs')
    def docs_index():
        return (
            "<!DOCTYPE html><html><head><title>Repair Shop API Docs</title>"
            "<link rel=\"stylesheet\" href=\"https://cdn.jsdelivr.net/npm/redoc@next/bundles/redoc.standalone.css\" />"
            "</head><body><redoc spec-url='/openapi.json'></redoc>"
            "<script src='https://cdn.jsdelivr.net/npm/redoc@next/bundles/redoc.standalone.js'></script>"
            "</body></html>"
        )

    return app


def get_db():
    return SessionLocal()
