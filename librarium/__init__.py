import logging

from flask import Flask, abort, jsonify, request, session

from .config import get_config
from .errors import LifecycleError
from .extensions import db, migrate
from .security.security_events import record_security_event
from .utils import client_ip


def create_app(config_overrides: dict | None = None):
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(get_config())

    # overrides go in before db.init_app so SQLAlchemy picks up the test database
    if config_overrides:
        app.config.update(config_overrides)

    logging.basicConfig(level=logging.INFO)
    app.logger.info("Librarium - init app")

    db.init_app(app)

    # load models so Alembic sees the metadata
    from . import models  # noqa: F401

    migrate.init_app(app, db)

    from .blueprints.auth.routes import bp as auth_bp
    from .blueprints.books.routes import bp as books_bp
    from .blueprints.requests.routes import bp as requests_bp
    from .blueprints.checkouts.routes import bp as checkouts_bp
    from .blueprints.admin import bp as admin_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(books_bp)
    app.register_blueprint(requests_bp)
    app.register_blueprint(checkouts_bp)
    app.register_blueprint(admin_bp)

    from .cli import seed_db_command
    app.cli.add_command(seed_db_command)

    from .models import User
    from .security.access import is_public_endpoint, check_access
    from .security.rate_limit import limiter, limits_for

    # -----------------------------
    # Error handlers (JSON)
    # -----------------------------
    @app.errorhandler(LifecycleError)
    def err_lifecycle(e: LifecycleError):
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(400)
    def err_400(e):
        return jsonify(error="bad_request", message=e.description), 400

    @app.errorhandler(401)
    def err_401(e):
        return jsonify(error="unauthorized"), 401

    @app.errorhandler(403)
    def err_403(e):
        return jsonify(error="forbidden"), 403

    @app.errorhandler(404)
    def err_404(e):
        return jsonify(error="not_found"), 404

    @app.errorhandler(429)
    def err_429(e):
        return jsonify(error="too_many_requests"), 429

    # -----------------------------
    # Global enforcement: auth, blocked users, RBAC, auth rate limit
    # -----------------------------
    @app.before_request
    def enforce_global_access():
        # unresolved routes -> 404 handler
        if request.endpoint is None:
            return

        # CORS preflight and static files
        if request.method == "OPTIONS" or request.endpoint == "static":
            return

        # rate limit auth.* outside tests; auth.* is public so this runs first
        if (not app.config.get("TESTING")) and request.endpoint.startswith("auth."):
            ip = client_ip(request) or "unknown"
            limit, window_sec = limits_for(request.endpoint, app.config["AUTH_RATE_LIMITS"])

            key = f"{ip}:{request.endpoint}"
            if not limiter.hit(key, limit=limit, window_sec=window_sec):
                app.logger.info(
                    "RATE LIMIT 429: ip=%s endpoint=%s limit=%s window=%s",
                    ip, request.endpoint, limit, window_sec,
                )
                record_security_event(
                    event_type="rate_limited",
                    status_code=429,
                    req=request,
                    details=f"limit={limit} window={window_sec} key={key}",
                )
                abort(429)

        if is_public_endpoint(request.endpoint):
            return

        user_id = session.get("user_id")
        if not user_id:
            app.logger.info(
                "RBAC DENY 401: no session user_id | endpoint=%s method=%s path=%s",
                request.endpoint, request.method, request.path,
            )
            record_security_event(
                event_type="deny_unauthorized",
                status_code=401,
                req=request,
                details="missing session user_id",
            )
            abort(401)

        user = db.session.get(User, user_id)
        if user is None:
            session.clear()
            abort(401)

        if user.is_blocked or not user.is_active:
            app.logger.info(
                "RBAC DENY 403: blocked user_id=%s role=%s | endpoint=%s method=%s path=%s",
                user_id, user.role, request.endpoint, request.method, request.path,
            )
            record_security_event(
                event_type="deny_blocked",
                status_code=403,
                req=request,
                user=user,
                details="user blocked or inactive",
            )
            abort(403)

        if not check_access(user, request):
            app.logger.info(
                "RBAC DENY 403: forbidden user_id=%s role=%s bp=%s | endpoint=%s method=%s path=%s",
                user_id, user.role, request.blueprint,
                request.endpoint, request.method, request.path,
            )
            record_security_event(
                event_type="deny_forbidden",
                status_code=403,
                req=request,
                user=user,
                details=f"bp={request.blueprint}",
            )
            abort(403)

    @app.get("/health")
    def health():
        return jsonify(status="ok")

    @app.get("/")
    def index():
        return jsonify(name="librarium", status="ok")

    @app.get("/routes")
    def routes():
        return jsonify(sorted([str(r) for r in app.url_map.iter_rules()]))

    return app
