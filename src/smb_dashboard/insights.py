# SMB Dashboard - Financial Dashboard & Insights application for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
AI insight gateway for SMB Dashboard.

This module talks to a large-language-model service to produce two kinds of
insight from the business records:

1) Financial alerts
   - ``InsightGateway.request_alerts(sales, expenses)`` sends the last 30
     days of sales and expenses, plus the 30 days of sales before that for
     comparison, and asks for up to 3 alerts (title, message, severity).
   - Alerts are best-effort: when there is no data, no API key, or when the
     call or the parsing fails, an empty list is returned and the failure is
     logged. The dashboard must keep working without alerts.

2) Forecast & strategic overview
   - ``InsightGateway.request_forecast(...)`` sends every collection plus the
     user's assumptions (analysis window, free-text notes) and asks for a
     3-month forecast, trends, recommendations, opportunities, risks and a
     KPI deep dive.
   - Failures raise ``InsightError`` with a user-facing message.

The provider is the OpenAI Python SDK (``openai.AsyncOpenAI``) using chat
completions in JSON mode. The client can be injected, which is how the test
suite replaces it with a fake.

Response parsing is strict: the JSON payload must follow the documented
schema, otherwise a ``ValueError`` is raised by ``parse_alert_drafts`` /
``parse_analysis``.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping, Sequence
from dataclasses import asdict
from datetime import date
from typing import Any, Optional

from openai import AsyncOpenAI

from .config import InsightsConfig
from .models import (
    AIAnalysis,
    AlertDraft,
    AlertSeverity,
    Customer,
    Expense,
    ForecastAssumptions,
    ForecastPoint,
    KpiAnalysis,
    KpiHistoryPoint,
    Product,
    Sale,
)
from .periods import alert_windows, filter_by_period

logger = logging.getLogger(__name__)

MAX_ALERTS_PER_REQUEST = 3

FORECAST_ERROR_MESSAGE = (
    "Failed to generate AI analysis. Please check your API key and try again."
)


class InsightError(RuntimeError):
    """Raised when the AI forecast cannot be produced."""


# ---------------------------------------------------------------------------
# Prompt building
# ---------------------------------------------------------------------------


def _to_json(records: Sequence[Any]) -> str:
    """Serialize dataclass records as indented JSON (dates as ISO strings)."""
    return json.dumps([asdict(r) for r in records], indent=2, default=str)


def build_alerts_prompt(
    sales: Sequence[Sale],
    expenses: Sequence[Expense],
    window_days: int = 30,
    today: Optional[date] = None,
) -> str:
    recent, previous = alert_windows(window_days, today)
    recent_sales = filter_by_period(sales, recent)
    recent_expenses = filter_by_period(expenses, recent)
    previous_sales = filter_by_period(sales, previous)

    return f"""
Act as a proactive financial monitoring AI for a small business. Analyze the
recent sales and expenses data to identify critical risks or important
informational points.

Recent data:
- Last {window_days} days of sales: {_to_json(recent_sales)}
- Last {window_days} days of expenses: {_to_json(recent_expenses)}
- Previous {window_days} days of sales (for comparison): {_to_json(previous_sales)}

Task:
Identify up to {MAX_ALERTS_PER_REQUEST} major alerts. Focus on the most critical issues.
- High burn rate: is cash burn (expenses - revenue) dangerously high?
- Revenue drop: has revenue significantly dropped compared to the previous period?
- Large expense: is there an unusually large single expense that needs attention?
- Concentration risk: is a single customer or product responsible for a majority of revenue?

For each identified issue, create an alert with a title, a short message
explaining the problem and a severity level ("critical", "warning" or "info").

Answer with a JSON object of the form
{{"alerts": [{{"title": str, "message": str, "severity": str}}]}}.
If there are no major issues, return {{"alerts": []}}.
""".strip()


def build_forecast_prompt(
    products: Sequence[Product],
    sales: Sequence[Sale],
    expenses: Sequence[Expense],
    customers: Sequence[Customer],
    assumptions: ForecastAssumptions,
) -> str:
    notes = assumptions.notes.strip() or "No specific assumptions provided."
    return f"""
As a senior financial analyst and strategic consultant for a small business,
perform a comprehensive analysis of the following business data.

Business data:
- Inventory: {_to_json(products)}
- Sales records: {_to_json(sales)}
- Expenses: {_to_json(expenses)}
- Customer data: {_to_json(customers)}

User-provided assumptions (use these to refine your analysis):
- Analysis period: {assumptions.start.isoformat()} to {assumptions.end.isoformat()}
- Strategic notes: "{notes}"

Provide a full strategic overview:
1. 3-month financial forecast: a realistic forecast (revenue, expenses, profit)
   incorporating the user's assumptions.
2. Key trends: 2-3 significant trends.
3. Recommendations: 2-3 concise, high-impact recommendations.
4. Key opportunities: 1-2 untapped opportunities for growth or efficiency.
5. Potential risks: 1-2 critical risks.
6. KPI deep dive: 1-2 critical KPIs (e.g. LTV, CAC, ARPU) with name, current
   value, a brief analysis and a 3-month history.

Answer with a JSON object of the form
{{"forecast": [{{"month": str, "revenue": number, "expenses": number, "profit": number}}],
 "trends": [str], "recommendations": [str], "keyOpportunities": [str],
 "potentialRisks": [str],
 "kpiAnalysis": [{{"kpi": str, "value": str, "analysis": str,
                  "history": [{{"month": str, "value": number}}]}}]}}
""".strip()


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------


def _require_mapping(value: Any, where: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ValueError(f"Invalid {where}: expected a JSON object.")
    return value


def _require_list(value: Any, where: str) -> list:
    if not isinstance(value, list):
        raise ValueError(f"Invalid {where}: expected a JSON array.")
    return value


def _require_str(item: Mapping[str, Any], key: str, where: str) -> str:
    value = item.get(key)
    if not isinstance(value, str):
        raise ValueError(f"Invalid {where}: '{key}' must be a string.")
    return value


def _require_number(item: Mapping[str, Any], key: str, where: str) -> float:
    value = item.get(key)
    # bool is an int subclass but never a valid amount.
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"Invalid {where}: '{key}' must be a number.")
    return float(value)


def _str_list(raw: Mapping[str, Any], key: str) -> tuple[str, ...]:
    items = _require_list(raw.get(key), key)
    if not all(isinstance(i, str) for i in items):
        raise ValueError(f"Invalid {key}: expected a list of strings.")
    return tuple(items)


def parse_alert_drafts(payload: Any) -> list[AlertDraft]:
    """
    Parse the alerts payload returned by the model.

    Accepts either a bare JSON array of alerts or an object wrapping it under
    an ``"alerts"`` key.

    Raises:
        ValueError: if the payload does not follow the schema or an alert has
            an unknown severity.
    """
    if isinstance(payload, Mapping):
        payload = payload.get("alerts")
    items = _require_list(payload, "alerts payload")

    drafts: list[AlertDraft] = []
    for item in items:
        item = _require_mapping(item, "alert")
        drafts.append(
            AlertDraft(
                title=_require_str(item, "title", "alert"),
                message=_require_str(item, "message", "alert"),
                severity=AlertSeverity.parse(_require_str(item, "severity", "alert")),
            )
        )
    return drafts


def parse_analysis(payload: Any) -> AIAnalysis:
    """
    Parse the forecast payload returned by the model into an AIAnalysis.

    Raises:
        ValueError: if a required key is missing or has the wrong type.
    """
    raw = _require_mapping(payload, "analysis payload")

    forecast = tuple(
        ForecastPoint(
            month=_require_str(p, "month", "forecast point"),
            revenue=_require_number(p, "revenue", "forecast point"),
            expenses=_require_number(p, "expenses", "forecast point"),
            profit=_require_number(p, "profit", "forecast point"),
        )
        for p in (
            _require_mapping(x, "forecast point")
            for x in _require_list(raw.get("forecast"), "forecast")
        )
    )

    kpis = []
    for k in _require_list(raw.get("kpiAnalysis"), "kpiAnalysis"):
        k = _require_mapping(k, "KPI analysis")
        history = tuple(
            KpiHistoryPoint(
                month=_require_str(h, "month", "KPI history"),
                value=_require_number(h, "value", "KPI history"),
            )
            for h in (
                _require_mapping(x, "KPI history")
                for x in _require_list(k.get("history"), "KPI history")
            )
        )
        # Models sometimes return the KPI value as a bare number.
        value = k.get("value")
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            value = str(value)
        kpis.append(
            KpiAnalysis(
                kpi=_require_str(k, "kpi", "KPI analysis"),
                value=_require_str({"value": value}, "value", "KPI analysis"),
                analysis=_require_str(k, "analysis", "KPI analysis"),
                history=history,
            )
        )

    return AIAnalysis(
        forecast=forecast,
        trends=_str_list(raw, "trends"),
        recommendations=_str_list(raw, "recommendations"),
        key_opportunities=_str_list(raw, "keyOpportunities"),
        potential_risks=_str_list(raw, "potentialRisks"),
        kpi_analysis=tuple(kpis),
    )


# ---------------------------------------------------------------------------
# Gateway
# ---------------------------------------------------------------------------


class InsightGateway:
    """
    Async gateway to the AI insight service.

    Parameters
    ----------
    settings:
        Model, temperatures and credentials.
    client:
        Object exposing ``chat.completions.create`` (an ``AsyncOpenAI``
        instance by default). When None, a client is created lazily on
        first use, and only if an API key is configured.

    A lazily created client is bound to the event loop it was first used
    on. Call ``aclose()`` before that loop ends; the next request then
    creates a fresh client.
    """

    def __init__(
        self,
        settings: Optional[InsightsConfig] = None,
        client: Any = None,
    ) -> None:
        self.settings = settings or InsightsConfig()
        self._client = client
        self._owns_client = False

    @property
    def is_configured(self) -> bool:
        """True when requests can be sent (injected client or API key)."""
        return self._client is not None or self.settings.enabled

    def _get_client(self) -> Any:
        if self._client is None:
            if not self.settings.enabled:
                raise InsightError(
                    f"No API key found in environment variable "
                    f"{self.settings.api_key_env!r}."
                )
            self._client = AsyncOpenAI(
                api_key=self.settings.api_key,
                base_url=self.settings.base_url,
                timeout=self.settings.timeout_seconds,
            )
            self._owns_client = True
        return self._client

    async def aclose(self) -> None:
        """Close the client created by this gateway, if any.

        An injected client belongs to the caller and is left open.
        """
        if self._owns_client and self._client is not None:
            client, self._client = self._client, None
            self._owns_client = False
            await client.close()

    async def _complete_json(self, prompt: str, temperature: float) -> Any:
        """Send one prompt in JSON mode and return the decoded payload."""
        client = self._get_client()
        response = await client.chat.completions.create(
            model=self.settings.model,
            messages=[
                {
                    "role": "system",
                    "content": "You are a financial analyst. Reply with JSON only.",
                },
                {"role": "user", "content": prompt},
            ],
            response_format={"type": "json_object"},
            temperature=temperature,
        )
        content = response.choices[0].message.content or ""
        return json.loads(content.strip())

    async def request_alerts(
        self,
        sales: Sequence[Sale],
        expenses: Sequence[Expense],
        today: Optional[date] = None,
    ) -> list[AlertDraft]:
        """
        Ask the model for up to 3 financial alerts.

        Returns an empty list without calling the service when there are no
        sales and no expenses, or when the gateway is not configured. Any
        error is logged and also yields an empty list.
        """
        if not sales and not expenses:
            return []
        if not self.is_configured:
            logger.debug("Insight service not configured, skipping alerts.")
            return []

        prompt = build_alerts_prompt(
            sales, expenses, self.settings.alert_window_days, today
        )
        try:
            payload = await self._complete_json(
                prompt, self.settings.alerts_temperature
            )
            drafts = parse_alert_drafts(payload)
        except Exception:  # noqa: BLE001
            logger.exception("Error fetching financial alerts.")
            return []

        if len(drafts) > MAX_ALERTS_PER_REQUEST:
            logger.debug(
                "Model returned %d alerts, keeping the first %d.",
                len(drafts),
                MAX_ALERTS_PER_REQUEST,
            )
        return drafts[:MAX_ALERTS_PER_REQUEST]

    async def request_forecast(
        self,
        products: Sequence[Product],
        sales: Sequence[Sale],
        expenses: Sequence[Expense],
        customers: Sequence[Customer],
        assumptions: ForecastAssumptions,
    ) -> AIAnalysis:
        """
        Ask the model for a 3-month forecast and strategic overview.

        Raises:
            InsightError: if the service is unreachable, not configured, or
                returns a payload that does not follow the schema.
        """
        prompt = build_forecast_prompt(
            products, sales, expenses, customers, assumptions
        )
        try:
            payload = await self._complete_json(
                prompt, self.settings.forecast_temperature
            )
            return parse_analysis(payload)
        except Exception as exc:  # noqa: BLE001
            logger.error("Error fetching financial analysis: %s", exc)
            raise InsightError(FORECAST_ERROR_MESSAGE) from exc
