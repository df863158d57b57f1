from pathlib import Path

from flask import Flask, jsonify, request
from sqlalchemy.engine.url import make_url

from quizportal.config import Config
from quizportal.errors import LoginError
from quizportal.extensions import bcrypt, db, login_manager, migrate
from quizportal.models import EventQuiz, EventQuizResult, QuizCredential, QuizSettings


def _quiz_client_origins(configured):
    origins = {"http://localhost:3000", "http://127.0.0.1:3000"}
    if configured and configured != "*":
        origins.add(configured)
        origins.add(configured.replace("127.0.0.1", "localhost"))
    return origins


def _install_cors(app):
    """Answer preflights and tag responses for the quiz front-end origins."""
    configured = app.config.get("CORS_ORIGIN")
    origins = _quiz_client_origins(configured)

    def allowed(origin):
        return bool(origin) and (configured == "*" or origin in origins)

    @app.before_request
    def preflight():
        if request.method == "OPTIONS":
            return app.make_default_options_response()

    @app.after_request
    def cors_headers(response):
        origin = request.headers.get("Origin")
        if allowed(origin):
            response.headers.update(
                {
                    "Access-Control-Allow-Origin": origin,
                    "Access-Control-Allow-Credentials": "true",
                    "Access-Control-Allow-Headers": "Content-Type, Authorization",
                    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
                }
            )
            response.vary.add("Origin")
        return response


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Ensure the SQLite DB directory exists before the first connection
    db_url = make_url(app.config["SQLALCHEMY_DATABASE_URI"])
    if db_url.drivername == "sqlite" and db_url.database:
        Path(db_url.database).parent.mkdir(parents=True, exist_ok=True)

    db.init_app(app)
    migrate.init_app(app, db)
    bcrypt.init_app(app)
    login_manager.init_app(app)
    login_manager.login_message = None

    @login_manager.user_loader
    def load_credential(credential_id):
        credential = db.session.get(QuizCredential, int(credential_id))
        if credential is None or not credential.is_active:
            return None
        return credential

    @login_manager.unauthorized_handler
    def unauthorized():
        # Return JSON 401 instead of redirecting to login
        return {"error": "Unauthorized"}, 401

    @app.errorhandler(LoginError)
    def handle_login_error(exc):
        return jsonify(exc.to_dict()), exc.http_status

    # Register blueprints
    from quizportal.routes.admin import admin_bp
    from quizportal.routes.auth import auth_bp
    from quizportal.routes.events import events_bp

    app.register_blueprint(admin_bp, url_prefix="/api/admin")
    app.register_blueprint(auth_bp, url_prefix="/api/event-quizzes")
    app.register_blueprint(events_bp, url_prefix="/api/event-quizzes")

    _install_cors(app)

    @app.route("/health", methods=["GET"])
    def health():
        return {"status": "ok"}, 200

    with app.app_context():
        # Ensure the quiz tables exist without requiring a migration step here
        for model in (EventQuiz, QuizCredential, EventQuizResult, QuizSettings):
            model.__table__.create(db.engine, checkfirst=True)

    return app
