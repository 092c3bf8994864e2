import os
from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

# Load .env only for local/dev. In prod, env vars come from the platform.
if os.getenv("APP_ENV", "development") != "production":
    from dotenv import load_dotenv
    load_dotenv(".env", override=False)


from .config import get_config
from .extensions import db, migrate, login_manager, limiter
from .security import init_security
from .observability import init_logging, init_sentry
from .services.errors import ServiceError
from .services.ingestion import IngestionPolicy, IngestionService
from .services.rate_limit import SubmissionRateLimiter


def create_app(config_overrides=None):
    app = Flask(__name__)

    # ---- Rate limiting storage configuration ----
    app_env = (os.getenv("APP_ENV", "development") or "development").lower()
    use_redis = app_env in ("staging", "production")
    storage_uri = os.environ.get("REDIS_URL") if use_redis else "memory://"
    if use_redis and not storage_uri:
        # Hard fail in stage/prod so we never silently run without RL storage
        raise RuntimeError("REDIS_URL is required in staging/production for rate limiting")
    app.config["RATELIMIT_STORAGE_URI"] = storage_uri

    # Config: clean, explicit, class-based
    app.config.from_object(get_config())
    if config_overrides:
        app.config.update(config_overrides)

    # --- Required env validation for prod-like envs (staging/production) ---
    def _require(name: str):
        val = os.getenv(name) or app.config.get(name)
        if not val:
            raise RuntimeError(f"Missing required environment variable: {name}")
        return val

    if app_env in ("staging", "production"):
        # Enforce hard requirements at startup (not at import time)
        _require("SECRET_KEY")
        _require("DATABASE_URL")
        _require("API_KEY_SALT")
        _require("ADMIN_API_TOKEN")

    # --- Observability & Security ---
    init_logging(app)
    init_sentry(app)

    # Apply HTTPS, HSTS & CSP only in staging/production
    if app_env in ("staging", "production"):
        init_security(app)

    # Init extensions
    db.init_app(app)
    migrate.init_app(app, db, directory="migrations")
    login_manager.init_app(app)
    # Global soft fallback: catch outliers before any per-application accounting
    limiter.init_app(app)

    # Ingestion policy is read once and injected; tests swap the service wholesale
    policy = IngestionPolicy.from_config(app.config)
    app.extensions["feedbackhub.ingestion"] = IngestionService(
        policy, SubmissionRateLimiter.from_config(app.config, policy)
    )

    # Blueprints (explicit, consistent prefixes)
    from .blueprints.ingest import bp as ingest_bp
    from .blueprints.admin import bp as admin_bp

    app.register_blueprint(ingest_bp, url_prefix="/api/v1")
    app.register_blueprint(admin_bp, url_prefix="/admin")

    # Health
    @app.get("/healthz")
    @limiter.exempt
    def healthz():
        return {"status": "ok"}, 200

    # Service errors: one JSON shape for every failure the core reports
    @app.errorhandler(ServiceError)
    def handle_service_error(e):
        if e.status_code >= 500:
            app.logger.error("service_error", exc_info=e.__cause__ or e,
                             extra={"event": "service_error", "path": request.path})
        return jsonify(e.to_dict()), e.status_code, e.headers

    # 429 from the global limiter: same JSON shape, with Retry-After
    @app.errorhandler(429)
    def too_many_requests(e):
        retry_after = getattr(e, "retry_after", None)
        headers = {}
        payload = {"error": "rate_limited", "code": 429, "message": "Too many requests"}
        if retry_after is not None:
            headers["Retry-After"] = str(int(retry_after))
            payload["retry_after"] = int(retry_after)
        return (payload, 429, headers)

    @app.errorhandler(HTTPException)
    def http_error(e):
        return {"error": (e.name or "error").lower().replace(" ", "_"), "code": e.code,
                "message": e.description}, e.code

    @app.errorhandler(500)
    def server_error(e):
        return {"error": "internal_error", "code": 500, "message": "Internal server error"}, 500

    # CLI commands (ops-grade utilities)
    from .cli import register_cli
    register_cli(app)

    return app
