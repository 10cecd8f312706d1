# SMB Dashboard - Financial Dashboard & Insights application for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Dashboard session.

A session ties together the pieces a running dashboard needs:

- the ``RecordStore`` holding the business records,
- the ``InsightGateway`` used for AI alerts and forecasts,
- an ``AlertScheduler`` that refreshes alerts (debounced) whenever sales or
  expenses change, only when the gateway is configured,
- the state of the last forecast request (analysis, error, loading flag).

A failed forecast clears the previous analysis and records the error
message, so a stale analysis is never shown next to an error.
"""

import logging
from datetime import date
from typing import Optional

from .config import AppConfig
from .insights import InsightError, InsightGateway
from .models import AIAnalysis, AlertDraft, FinancialAlert, ForecastAssumptions
from .scheduler import AlertScheduler
from .store import RecordStore

logger = logging.getLogger(__name__)

_ALERT_TRIGGERS = frozenset({"sales", "expenses"})


class DashboardSession:
    """Record store plus AI insight state for one dashboard session."""

    def __init__(
        self,
        store: Optional[RecordStore] = None,
        gateway: Optional[InsightGateway] = None,
        config: Optional[AppConfig] = None,
    ) -> None:
        self.config = config or AppConfig()
        self.store = store or RecordStore(max_alerts=self.config.insights.max_alerts)
        self.gateway = gateway or InsightGateway(self.config.insights)

        self.analysis: Optional[AIAnalysis] = None
        self.forecast_error: Optional[str] = None
        self.forecast_loading = False

        self.scheduler = AlertScheduler(
            fetch=self._fetch_alerts,
            deliver=self._deliver_alerts,
            delay=self.config.insights.debounce_seconds,
        )
        self._unsubscribe = self.store.subscribe(self._on_change)

    # ------------------------------------------------------------------
    # Alerts
    # ------------------------------------------------------------------

    def _on_change(self, collection: str) -> None:
        if collection in _ALERT_TRIGGERS and self.gateway.is_configured:
            self.scheduler.notify_change()

    async def _fetch_alerts(self) -> list[AlertDraft]:
        return await self.gateway.request_alerts(self.store.sales, self.store.expenses)

    def _deliver_alerts(self, drafts: list[AlertDraft]) -> None:
        created = self.store.push_alerts(drafts)
        if created:
            logger.info("Received %d new financial alert(s).", len(created))

    async def refresh_alerts(
        self, today: Optional[date] = None
    ) -> tuple[FinancialAlert, ...]:
        """
        Fetch alerts immediately (no debounce) and merge them into the store.

        Returns the newly created alerts (possibly empty).
        """
        drafts = await self.gateway.request_alerts(
            self.store.sales, self.store.expenses, today=today
        )
        return self.store.push_alerts(drafts)

    # ------------------------------------------------------------------
    # Forecast
    # ------------------------------------------------------------------

    async def run_forecast(
        self, assumptions: ForecastAssumptions
    ) -> Optional[AIAnalysis]:
        """
        Request a forecast for the current records.

        On success the analysis is stored and returned. On failure the
        previous analysis is cleared, ``forecast_error`` holds the
        user-facing message and None is returned.
        """
        self.forecast_loading = True
        self.forecast_error = None
        try:
            analysis = await self.gateway.request_forecast(
                self.store.products,
                self.store.sales,
                self.store.expenses,
                self.store.customers,
                assumptions,
            )
        except InsightError as exc:
            self.analysis = None
            self.forecast_error = str(exc)
            return None
        finally:
            self.forecast_loading = False

        self.analysis = analysis
        return analysis

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def aclose(self) -> None:
        """Stop listening to the store, cancel pending alert work and close
        the gateway's connections."""
        self._unsubscribe()
        await self.scheduler.aclose()
        await self.gateway.aclose()
