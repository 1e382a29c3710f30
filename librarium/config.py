import os
from dataclasses import dataclass


def _bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _int(value: str | None, default: int) -> int:
    if value is None or not value.strip():
        return default
    return int(value)


def _default_sqlite_uri() -> str:
    # librarium/ -> project root
    project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
    instance_dir = os.path.join(project_root, "instance")
    os.makedirs(instance_dir, exist_ok=True)
    db_path = os.path.join(instance_dir, "librarium.db")
    return "sqlite:///" + db_path


@dataclass(frozen=True)
class BaseConfig:
    SECRET_KEY: str = os.getenv("SECRET_KEY", "dev-change-me")
    SQLALCHEMY_DATABASE_URI: str = os.getenv("DATABASE_URL", _default_sqlite_uri())
    SQLALCHEMY_TRACK_MODIFICATIONS: bool = False

    SESSION_COOKIE_HTTPONLY: bool = True
    SESSION_COOKIE_SAMESITE: str = "Lax"
    SESSION_COOKIE_SECURE: bool = _bool(os.getenv("SESSION_COOKIE_SECURE"), default=False)

    # borrow lifecycle
    DEFAULT_DUE_DAYS: int = _int(os.getenv("DEFAULT_DUE_DAYS"), 14)
    MAX_DUE_DAYS: int = _int(os.getenv("MAX_DUE_DAYS"), 90)

    # metadata enrichment
    HF_API_TOKEN: str = os.getenv("HF_API_TOKEN", "")
    HF_MODEL_URL: str = os.getenv(
        "HF_MODEL_URL",
        "https://api-inference.huggingface.co/models/mistralai/Mistral-7B-Instruct-v0.3",
    )
    ENRICH_REMOTE: bool = _bool(os.getenv("ENRICH_REMOTE"), default=True)
    ENRICH_TIMEOUT: float = float(os.getenv("ENRICH_TIMEOUT", "15"))

    # (endpoint, limit, window_sec); "default" applies to the other auth.* endpoints
    AUTH_RATE_LIMITS: tuple = (
        ("auth.login", 10, 60),
        ("auth.register", 6, 60),
        ("default", 20, 60),
    )


class DevelopmentConfig(BaseConfig):
    DEBUG: bool = True


class ProductionConfig(BaseConfig):
    DEBUG: bool = False


def get_config():
    env = os.getenv("FLASK_ENV", "development").lower()
    if env == "production":
        return ProductionConfig
    return DevelopmentConfig
