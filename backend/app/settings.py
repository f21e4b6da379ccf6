from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


def _strip_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {'"', "'"}:
        return value[1:-1]
    return value


def load_env_file(env_path: Path) -> None:
    if not env_path.exists():
        return

    for raw_line in env_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue

        if line.startswith("export "):
            line = line[len("export ") :]

        key, separator, value = line.partition("=")
        if not separator:
            continue

        env_key = key.strip()
        if not env_key:
            continue

        env_value = _strip_quotes(value.strip())
        os.environ.setdefault(env_key, env_value)


def _resolve_project_path(project_root: Path, raw_path: str | None) -> str | None:
    if raw_path is None or not raw_path.strip():
        return None
    candidate = Path(raw_path.strip()).expanduser()
    if candidate.is_absolute():
        return str(candidate)
    return str((project_root / candidate).resolve())


def _env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_mode(
    key: str,
    default: str,
    allowed: tuple[str, ...],
) -> str:
    value = os.getenv(key, default).strip().lower()
    if value not in allowed:
        allowed_csv = ", ".join(allowed)
        raise ValueError(f"{key} must be one of: {allowed_csv}")
    return value


def _env_optional(key: str) -> str | None:
    value = os.getenv(key)
    if value is None or not value.strip():
        return None
    return value.strip()


@dataclass(frozen=True)
class Settings:
    service_name: str
    service_version: str
    environment: str
    log_level: str
    host: str
    port: int
    state_store_mode: str = "memory"
    state_store_path: str | None = None
    provider_timeout_seconds: float = 10.0
    batch_delay_seconds: float = 0.1
    pipeline_language_delay_seconds: float = 0.2
    pipeline_validation_enabled: bool = True
    free_apis_enabled: bool = True
    mymemory_api_base_url: str = "https://api.mymemory.translated.net"
    libretranslate_api_url: str = "https://libretranslate.de/translate"
    linguee_api_base_url: str = "https://linguee-api.fly.dev/api/v2"
    microsoft_translator_key: str | None = None
    microsoft_translator_region: str = "global"
    microsoft_translator_endpoint: str = (
        "https://api.cognitive.microsofttranslator.com/translate"
    )
    google_translate_api_key: str | None = None
    google_translate_endpoint: str = (
        "https://translation.googleapis.com/language/translate/v2"
    )
    papago_client_id: str | None = None
    papago_client_secret: str | None = None
    papago_endpoint: str = "https://openapi.naver.com/v1/papago/n2mt"
    microsoft_monthly_char_limit: int = 2_000_000
    google_monthly_char_limit: int = 500_000
    papago_daily_char_limit: int = 10_000
    quality_min_confidence_threshold: int = 70
    recent_results_limit: int = 50
    translation_cache_limit: int = 500
    pexels_api_key: str | None = None
    pexels_api_base_url: str = "https://api.pexels.com/v1"
    voice_catalog: str | None = None
    voice_load_timeout_seconds: float = 2.0
    default_voice_lang: str = "en-US"

    @property
    def microsoft_key_configured(self) -> bool:
        return bool(self.microsoft_translator_key)

    @property
    def google_key_configured(self) -> bool:
        return bool(self.google_translate_api_key)

    @property
    def papago_key_configured(self) -> bool:
        return bool(self.papago_client_id and self.papago_client_secret)

    @property
    def pexels_key_configured(self) -> bool:
        return bool(self.pexels_api_key)

    def redacted(self) -> dict[str, str | int | float | bool | None]:
        return {
            "service_name": self.service_name,
            "service_version": self.service_version,
            "environment": self.environment,
            "log_level": self.log_level,
            "host": self.host,
            "port": self.port,
            "state_store_mode": self.state_store_mode,
            "state_store_path_configured": bool(self.state_store_path),
            "provider_timeout_seconds": self.provider_timeout_seconds,
            "batch_delay_seconds": self.batch_delay_seconds,
            "pipeline_language_delay_seconds": self.pipeline_language_delay_seconds,
            "pipeline_validation_enabled": self.pipeline_validation_enabled,
            "free_apis_enabled": self.free_apis_enabled,
            "mymemory_api_base_url": self.mymemory_api_base_url,
            "libretranslate_api_url": self.libretranslate_api_url,
            "linguee_api_base_url": self.linguee_api_base_url,
            "microsoft_key_configured": self.microsoft_key_configured,
            "microsoft_translator_region": self.microsoft_translator_region,
            "google_key_configured": self.google_key_configured,
            "papago_key_configured": self.papago_key_configured,
            "microsoft_monthly_char_limit": self.microsoft_monthly_char_limit,
            "google_monthly_char_limit": self.google_monthly_char_limit,
            "papago_daily_char_limit": self.papago_daily_char_limit,
            "quality_min_confidence_threshold": self.quality_min_confidence_threshold,
            "recent_results_limit": self.recent_results_limit,
            "translation_cache_limit": self.translation_cache_limit,
            "pexels_key_configured": self.pexels_key_configured,
            "voice_catalog_configured": bool(self.voice_catalog),
            "voice_load_timeout_seconds": self.voice_load_timeout_seconds,
            "default_voice_lang": self.default_voice_lang,
        }


def build_settings(project_root: Path) -> Settings:
    load_env_file(project_root / ".env")

    return Settings(
        service_name=os.getenv("BACKEND_SERVICE_NAME", "lexibridge-backend"),
        service_version=os.getenv("BACKEND_SERVICE_VERSION", "0.1.0"),
        environment=os.getenv("BACKEND_ENV", "development"),
        log_level=os.getenv("BACKEND_LOG_LEVEL", "INFO").upper(),
        host=os.getenv("BACKEND_HOST", "127.0.0.1"),
        port=int(os.getenv("BACKEND_PORT", "8000")),
        state_store_mode=_env_mode("STATE_STORE_MODE", "json", ("memory", "json")),
        state_store_path=_resolve_project_path(
            project_root,
            os.getenv("STATE_STORE_PATH", "backend/data/state"),
        ),
        provider_timeout_seconds=float(os.getenv("PROVIDER_TIMEOUT_SECONDS", "10.0")),
        batch_delay_seconds=float(os.getenv("BATCH_DELAY_SECONDS", "0.1")),
        pipeline_language_delay_seconds=float(
            os.getenv("PIPELINE_LANGUAGE_DELAY_SECONDS", "0.2")
        ),
        pipeline_validation_enabled=_env_bool("PIPELINE_VALIDATION_ENABLED", True),
        free_apis_enabled=_env_bool("FREE_APIS_ENABLED", True),
        mymemory_api_base_url=os.getenv(
            "MYMEMORY_API_BASE_URL", "https://api.mymemory.translated.net"
        ),
        libretranslate_api_url=os.getenv(
            "LIBRETRANSLATE_API_URL", "https://libretranslate.de/translate"
        ),
        linguee_api_base_url=os.getenv(
            "LINGUEE_API_BASE_URL", "https://linguee-api.fly.dev/api/v2"
        ),
        microsoft_translator_key=_env_optional("MICROSOFT_TRANSLATOR_KEY"),
        microsoft_translator_region=os.getenv("MICROSOFT_TRANSLATOR_REGION", "global"),
        microsoft_translator_endpoint=os.getenv(
            "MICROSOFT_TRANSLATOR_ENDPOINT",
            "https://api.cognitive.microsofttranslator.com/translate",
        ),
        google_translate_api_key=_env_optional("GOOGLE_TRANSLATE_API_KEY"),
        google_translate_endpoint=os.getenv(
            "GOOGLE_TRANSLATE_ENDPOINT",
            "https://translation.googleapis.com/language/translate/v2",
        ),
        papago_client_id=_env_optional("PAPAGO_CLIENT_ID"),
        papago_client_secret=_env_optional("PAPAGO_CLIENT_SECRET"),
        papago_endpoint=os.getenv(
            "PAPAGO_ENDPOINT", "https://openapi.naver.com/v1/papago/n2mt"
        ),
        microsoft_monthly_char_limit=int(
            os.getenv("MICROSOFT_MONTHLY_CHAR_LIMIT", "2000000")
        ),
        google_monthly_char_limit=int(os.getenv("GOOGLE_MONTHLY_CHAR_LIMIT", "500000")),
        papago_daily_char_limit=int(os.getenv("PAPAGO_DAILY_CHAR_LIMIT", "10000")),
        quality_min_confidence_threshold=int(
            os.getenv("QUALITY_MIN_CONFIDENCE_THRESHOLD", "70")
        ),
        recent_results_limit=int(os.getenv("RECENT_RESULTS_LIMIT", "50")),
        translation_cache_limit=int(os.getenv("TRANSLATION_CACHE_LIMIT", "500")),
        pexels_api_key=_env_optional("PEXELS_API_KEY"),
        pexels_api_base_url=os.getenv("PEXELS_API_BASE_URL", "https://api.pexels.com/v1"),
        voice_catalog=_env_optional("VOICE_CATALOG"),
        voice_load_timeout_seconds=float(os.getenv("VOICE_LOAD_TIMEOUT_SECONDS", "2.0")),
        default_voice_lang=os.getenv("DEFAULT_VOICE_LANG", "en-US"),
    )
