from __future__ import annotations

import argparse
import time
from dataclasses import dataclass, field
from typing import Any

import httpx


def emit(message: str = "") -> None:
    print(message, flush=True)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Send probe translations to a running backend and report which provider "
            "answered, how much quota is left, and where the fallback chain is failing."
        )
    )
    parser.add_argument(
        "--base-url",
        default="http://127.0.0.1:8000",
        help="Backend base URL (default: http://127.0.0.1:8000)",
    )
    parser.add_argument("--text", default="나무", help="Probe text (default: 나무)")
    parser.add_argument("--from-lang", default="ko", help="Source language (default: ko)")
    parser.add_argument(
        "--to-langs",
        default="en,ja,zh",
        help="Comma separated target languages (default: en,ja,zh)",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=0.5,
        help="Pause between probes in seconds (default: 0.5)",
    )
    return parser.parse_args()


@dataclass
class Snapshot:
    requests_succeeded: int = 0
    requests_failed: int = 0
    provider_errors: int = 0
    quota_skips: int = 0
    last_error: str | None = None
    available_providers: list[str] = field(default_factory=list)
    quota: dict[str, Any] = field(default_factory=dict)


def _to_int(payload: dict[str, Any], key: str) -> int:
    value = payload.get(key, 0)
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def fetch_snapshot(client: httpx.Client, base_url: str) -> Snapshot:
    status = client.get(f"{base_url}/translations/status").json()
    quota = client.get(f"{base_url}/translations/quota").json()
    return Snapshot(
        requests_succeeded=_to_int(status, "requests_succeeded"),
        requests_failed=_to_int(status, "requests_failed"),
        provider_errors=_to_int(status, "provider_errors"),
        quota_skips=_to_int(status, "quota_skips"),
        last_error=status.get("last_error") if isinstance(status.get("last_error"), str) else None,
        available_providers=list(quota.get("available_providers") or []),
        quota=dict(quota.get("quota") or {}),
    )


def diagnose(start: Snapshot, end: Snapshot, answered_by: list[str]) -> str:
    d_ok = end.requests_succeeded - start.requests_succeeded
    d_failed = end.requests_failed - start.requests_failed
    d_errors = end.provider_errors - start.provider_errors
    d_skips = end.quota_skips - start.quota_skips

    if not end.available_providers:
        return "NO PROVIDERS: every provider is unconfigured or out of quota."
    if d_ok <= 0 and d_skips > 0:
        return "QUOTA ISSUE: metered providers were skipped for lack of quota."
    if d_ok <= 0 and d_errors > 0:
        return f"UPSTREAM ISSUE: providers raised errors. last_error={end.last_error!r}"
    if d_ok <= 0 and d_failed > 0:
        return "COVERAGE ISSUE: providers answered but returned no usable translation."
    if answered_by and all(provider == "cascade" for provider in answered_by):
        return "ZERO COST: every probe was answered by the free cascade."
    if d_ok > 0:
        return "TRANSLATION RUNNING: probes answered, some by metered providers."
    return "AMBIGUOUS: inspect /translations/status last_error."


def main() -> int:
    args = parse_args()
    base_url = args.base_url.rstrip("/")
    targets = [item.strip() for item in args.to_langs.split(",") if item.strip()]

    emit(f"translation diagnose started (base_url={base_url}, targets={targets})")

    with httpx.Client(timeout=15.0) as client:
        try:
            health = client.get(f"{base_url}/health")
            health.raise_for_status()
        except httpx.HTTPError as exc:
            emit(f"failed to reach backend health endpoint: {exc}")
            return 2

        first = fetch_snapshot(client, base_url)
        answered_by: list[str] = []

        for idx, target in enumerate(targets):
            response = client.post(
                f"{base_url}/translations/translate",
                json={"text": args.text, "from_lang": args.from_lang, "to_lang": target},
            )
            if response.status_code == 200:
                body = response.json()
                answered_by.append(str(body.get("translated_by")))
                quality = body.get("quality_score") or {}
                emit(
                    f"[{idx+1:02d}] {args.from_lang}->{target} "
                    f"text={body.get('translated_text')!r} by={body.get('translated_by')} "
                    f"confidence={body.get('confidence')} "
                    f"quality={quality.get('overall')} ({quality.get('grade')})"
                )
            else:
                emit(f"[{idx+1:02d}] {args.from_lang}->{target} failed: {response.status_code} {response.text}")
            time.sleep(max(0.0, args.interval))

        last = fetch_snapshot(client, base_url)

    emit("")
    emit(f"VERDICT: {diagnose(first, last, answered_by)}")
    emit(f"available_providers: {last.available_providers}")
    for provider, quota in last.quota.items():
        emit(
            f"quota {provider}: used={quota.get('used')} limit={quota.get('limit')} "
            f"reset_at={quota.get('reset_at')}"
        )
    if last.last_error:
        emit(f"last_translation_error: {last.last_error}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
