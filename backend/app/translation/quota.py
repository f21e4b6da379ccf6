from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from backend.app.settings import Settings
from backend.app.storage.store import QUOTA_KEY, StateStore
from backend.app.translation.types import (
    PROVIDER_CASCADE,
    PROVIDER_GOOGLE,
    PROVIDER_MICROSOFT,
    PROVIDER_PAPAGO,
)

PERIOD_DAILY = "daily"
PERIOD_MONTHLY = "monthly"
PERIOD_UNLIMITED = "unlimited"

UNLIMITED_CHAR_LIMIT = 999_999_999
_UNLIMITED_RESET_AT = datetime(2099, 12, 31, tzinfo=timezone.utc)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def first_of_next_month(moment: datetime) -> datetime:
    if moment.month == 12:
        return moment.replace(
            year=moment.year + 1, month=1, day=1, hour=0, minute=0, second=0, microsecond=0
        )
    return moment.replace(
        month=moment.month + 1, day=1, hour=0, minute=0, second=0, microsecond=0
    )


def next_reset_at(period: str, now: datetime) -> datetime:
    if period == PERIOD_DAILY:
        return now + timedelta(hours=24)
    if period == PERIOD_MONTHLY:
        return first_of_next_month(now)
    return _UNLIMITED_RESET_AT


@dataclass(frozen=True)
class QuotaRecord:
    used: int
    limit: int
    reset_at: datetime
    period: str

    @property
    def unlimited(self) -> bool:
        return self.period == PERIOD_UNLIMITED

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.used)

    def to_dict(self) -> dict[str, Any]:
        return {
            "used": self.used,
            "limit": self.limit,
            "reset_at": self.reset_at.isoformat(),
            "period": self.period,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "QuotaRecord":
        reset_at = datetime.fromisoformat(str(payload["reset_at"]))
        if reset_at.tzinfo is None:
            reset_at = reset_at.replace(tzinfo=timezone.utc)
        return cls(
            used=max(0, int(payload.get("used", 0))),
            limit=int(payload["limit"]),
            reset_at=reset_at,
            period=str(payload.get("period", PERIOD_MONTHLY)),
        )


def reset_if_due(record: QuotaRecord, now: datetime) -> QuotaRecord:
    """Return ``record`` with usage zeroed when its reset moment has passed."""
    if record.unlimited or now <= record.reset_at:
        return record
    return replace(record, used=0, reset_at=next_reset_at(record.period, now))


def default_quota_records(settings: Settings, now: datetime) -> dict[str, QuotaRecord]:
    return {
        PROVIDER_CASCADE: QuotaRecord(
            used=0,
            limit=UNLIMITED_CHAR_LIMIT,
            reset_at=_UNLIMITED_RESET_AT,
            period=PERIOD_UNLIMITED,
        ),
        PROVIDER_MICROSOFT: QuotaRecord(
            used=0,
            limit=settings.microsoft_monthly_char_limit,
            reset_at=first_of_next_month(now),
            period=PERIOD_MONTHLY,
        ),
        PROVIDER_GOOGLE: QuotaRecord(
            used=0,
            limit=settings.google_monthly_char_limit,
            reset_at=first_of_next_month(now),
            period=PERIOD_MONTHLY,
        ),
        PROVIDER_PAPAGO: QuotaRecord(
            used=0,
            limit=settings.papago_daily_char_limit,
            reset_at=(now + timedelta(days=1)).replace(
                hour=0, minute=0, second=0, microsecond=0
            ),
            period=PERIOD_DAILY,
        ),
    }


class QuotaLedger:
    """Per-provider character budgets with lazy, read-triggered resets."""

    def __init__(
        self,
        settings: Settings,
        store: StateStore,
        logger: logging.Logger,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._settings = settings
        self._store = store
        self._logger = logger
        self._clock = clock

    def _defaults(self) -> dict[str, Any]:
        return {
            provider: record.to_dict()
            for provider, record in default_quota_records(self._settings, self._clock()).items()
        }

    def _load(self) -> dict[str, Any]:
        payload = self._store.get(QUOTA_KEY)
        if payload is None:
            payload = self._defaults()
            self._store.compare_and_swap(QUOTA_KEY, None, payload)
            payload = self._store.get(QUOTA_KEY, payload)
        return payload

    def _apply_reset(self, provider: str) -> QuotaRecord | None:
        raw = self._load().get(provider)
        if raw is None:
            return None

        now = self._clock()
        record = QuotaRecord.from_dict(raw)
        refreshed = reset_if_due(record, now)
        if refreshed is record:
            return record

        def _mutate(payload: dict[str, Any]) -> dict[str, Any]:
            if provider in payload:
                current = reset_if_due(QuotaRecord.from_dict(payload[provider]), now)
                payload[provider] = current.to_dict()
            return payload

        self._store.update(QUOTA_KEY, _mutate, self._defaults)
        self._logger.info(
            "quota_reset",
            extra={
                "event": "quota_reset",
                "service_name": self._settings.service_name,
                "service_version": self._settings.service_version,
                "provider": provider,
                "next_reset_at": refreshed.reset_at.isoformat(),
            },
        )
        return refreshed

    def record(self, provider: str) -> QuotaRecord | None:
        return self._apply_reset(provider)

    def has_remaining(self, provider: str) -> bool:
        record = self._apply_reset(provider)
        if record is None:
            return False
        if record.unlimited:
            return True
        return record.used < record.limit

    def debit(self, provider: str, char_count: int) -> None:
        if char_count <= 0:
            return
        now = self._clock()

        def _mutate(payload: dict[str, Any]) -> dict[str, Any]:
            raw = payload.get(provider)
            if raw is None:
                return payload
            current = reset_if_due(QuotaRecord.from_dict(raw), now)
            payload[provider] = replace(current, used=current.used + char_count).to_dict()
            return payload

        if provider not in self._load():
            return
        updated = self._store.update(QUOTA_KEY, _mutate, self._defaults)
        record = QuotaRecord.from_dict(updated[provider])
        if not record.unlimited and record.used >= record.limit:
            self._logger.warning(
                "quota_exhausted",
                extra={
                    "event": "quota_exhausted",
                    "service_name": self._settings.service_name,
                    "service_version": self._settings.service_version,
                    "provider": provider,
                    "used": record.used,
                    "limit": record.limit,
                    "reset_at": record.reset_at.isoformat(),
                },
            )

    def status(self) -> dict[str, dict[str, Any]]:
        report: dict[str, dict[str, Any]] = {}
        for provider in self._load():
            record = self._apply_reset(provider)
            if record is None:
                continue
            report[provider] = {
                "used": record.used,
                "limit": record.limit,
                "remaining": record.remaining,
                "reset_at": record.reset_at.isoformat(),
                "period": record.period,
            }
        return report

    def status_text(self) -> str:
        lines: list[str] = []
        for provider, quota in self.status().items():
            used_percent = round((quota["used"] / quota["limit"]) * 100) if quota["limit"] else 100
            lines.append(
                f"{provider}: {used_percent}% used ({quota['remaining']:,} chars remaining)"
            )
        return "\n".join(lines)
