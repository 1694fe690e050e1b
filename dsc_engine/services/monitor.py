"""Liquidation monitor: values every position and alerts on low health factors."""
from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime, timezone
from decimal import Decimal

from ..config import ThresholdsConfig
from ..constants import MAX_HEALTH_FACTOR, PRECISION
from ..engine import DSCEngine
from ..errors import OracleError
from ..interfaces.notifier import Notifier
from ..models import CollateralDetail, PositionReport

logger = logging.getLogger(__name__)

STATUS_HEALTHY = "✅ Healthy"
STATUS_WARNING = "⚠️ WARNING"
STATUS_CRITICAL = "🚨 CRITICAL"
STATUS_LIQUIDATABLE = "💀 LIQUIDATABLE"


def format_wad(value: int, places: int = 4) -> str:
    """Render an 18-decimal fixed-point value, e.g. ``1.5000``."""
    if value == MAX_HEALTH_FACTOR:
        return "∞"
    return f"{Decimal(value) / PRECISION:,.{places}f}"


class LiquidationMonitor:
    """Scans engine positions and dispatches alerts through notifiers."""

    def __init__(
        self,
        engine: DSCEngine,
        thresholds: ThresholdsConfig,
        notifiers: Sequence[Notifier] = (),
    ) -> None:
        self._engine = engine
        self._warning = int(thresholds.hf_warning * PRECISION)
        self._critical = int(thresholds.hf_critical * PRECISION)
        self._notifiers = list(notifiers)

    def _get_status(self, health_factor: int) -> str:
        if health_factor < self._engine.get_min_health_factor():
            return STATUS_LIQUIDATABLE
        if health_factor < self._critical:
            return STATUS_CRITICAL
        if health_factor < self._warning:
            return STATUS_WARNING
        return STATUS_HEALTHY

    @staticmethod
    def _now_str() -> str:
        return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")

    def report(self, user: str) -> PositionReport:
        engine = self._engine
        snapshot = engine.position(user)
        details = []
        for asset in engine.registry:
            amount = snapshot.collateral.get(asset.address, 0)
            if amount:
                details.append(
                    CollateralDetail(
                        asset=asset.address,
                        symbol=asset.symbol,
                        amount=amount,
                        usd_value=engine.get_usd_value(asset.address, amount),
                    )
                )
        health_factor = engine.health_factor(user)
        return PositionReport(
            user=user,
            collateral_value=sum(d.usd_value for d in details),
            debt=snapshot.debt,
            health_factor=health_factor,
            status=self._get_status(health_factor),
            collateral_assets=tuple(details),
        )

    def scan(self) -> list[PositionReport]:
        """Report every user that holds collateral or debt."""
        reports: list[PositionReport] = []
        for user in self._engine.users():
            snapshot = self._engine.position(user)
            if not (snapshot.debt or snapshot.collateral):
                continue
            try:
                reports.append(self.report(user))
            except OracleError as e:
                logger.error("Could not value position of %s: %s", user, e)
        return reports

    def _build_alert(self, report: PositionReport) -> str:
        holdings = (
            ", ".join(
                f"{d.symbol} ${format_wad(d.usd_value, 2)}" for d in report.collateral_assets
            )
            or "—"
        )
        return (
            f"{report.status} — HF {format_wad(report.health_factor)}\n"
            f"\n"
            f"User: {report.user}\n"
            f"Collateral: {holdings}\n"
            f"  ${format_wad(report.collateral_value, 2)}\n"
            f"Debt: {format_wad(report.debt, 2)} DSC\n"
            f"\n"
            f"{self._now_str()} UTC"
        )

    async def _send_alert(self, message: str, subject: str) -> None:
        for notifier in self._notifiers:
            try:
                await notifier.send_alert(message, subject=subject)
            except Exception as e:
                logger.error("Notifier send_alert failed: %s", e)

    async def check_and_alert(self) -> list[PositionReport]:
        """Scan all positions and alert on those below the warning threshold."""
        reports = self.scan()
        for report in reports:
            logger.info(
                "Position — %s · Collateral: $%s  Debt: %s  HF: %s  %s",
                report.user,
                format_wad(report.collateral_value, 2),
                format_wad(report.debt, 2),
                format_wad(report.health_factor),
                report.status,
            )
            if report.status == STATUS_HEALTHY:
                continue
            if report.status == STATUS_WARNING:
                subject = "⚠️ WARNING: Low health factor"
            else:
                subject = "🚨 CRITICAL: Liquidation risk!"
            await self._send_alert(self._build_alert(report), subject=subject)
        return reports
