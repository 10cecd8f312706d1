# SMB Dashboard - Financial Dashboard & Insights application for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Command-Line Interface (CLI) for SMB Dashboard.

This module wires together the main building blocks of SMB Dashboard:

- application configuration (display, inventory, metrics, AI insights),
- the record store, seeded from CSV files and/or the built-in demo data,
- the metrics engine (totals, monthly series, MRR, LTV/CAC, goals),
- the AI insight gateway (alerts, forecast),
- view helpers (filters, tables, export rows).

The CLI is intentionally thin: it does not compute any metric itself.
It builds a dashboard session, applies the requested filters and renders
the selected scope.


High-level pipeline
-------------------

1) Load the main TOML configuration (``smb_dashboard_config.toml`` by
   default, or ``--config PATH``). When no file is given and the default
   file does not exist, built-in defaults are used.

2) Seed the session:
   - ``--data-dir DIR`` (or ``[data] dir``) reads products.csv, sales.csv,
     expenses.csv, customers.csv and goals.csv from DIR,
   - ``--sample`` (or ``[data] sample = true``) loads the demo dataset.

3) Optionally delete records (``--delete sales --ids s1 s2``). A
   confirmation is asked unless ``--yes`` is given. Deletions only affect
   the current run: nothing is persisted.

4) Optionally show the detail of one product (``--product ID``: units sold
   and sales history) or one customer (``--customer ID``: average order
   value and purchase history).

5) Render the selected ``--scope`` as console tables and/or CSV files. The
   sales and expenses lists are grouped by month. AI scopes share a single
   event loop and the gateway is closed before it ends.

6) Optionally export a filtered list (``--export inventory|sales|expenses``)
   with the dashboard's export column sets, or only the records listed with
   ``--ids`` to ``<list>_selection_YYYY-MM-DD.csv``.


Scopes
------

- ``kpis`` (default): revenue, expenses, net profit, inventory value and
  customer count.
- ``monthly``: revenue vs expenses per month.
- ``mrr``: monthly recurring revenue, with a text bar chart in table mode.
- ``ltv-cac``: running LTV and monthly CAC.
- ``goals``: goals with their current value and progress.
- ``inventory``: products with stock status and value
  (filters: ``--search``, ``--status``).
- ``sales``: sales list (filters: ``--search``, ``--range``).
- ``expenses``: expenses list (filters: ``--search``, ``--category``).
- ``customers``: customers with orders and average order value
  (filter: ``--search``).
- ``alerts``: fetch AI financial alerts (requires an API key).
- ``forecast``: AI 3-month forecast and strategic overview (requires an API
  key; assumptions: ``--from-date``, ``--to-date``, ``--notes``).
- ``all``: every scope above; AI scopes only when an API key is configured.


Display modes and output
------------------------

``display.mode`` in the configuration ("table", "csv" or "both") can be
overridden with ``--display-mode``. CSV files are written to
``--output-dir`` (or ``[export] output_dir``) with a timestamp-based name,
e.g. ``mrr_YYYY-MM-DD-HH-MM-SS.csv``.

Examples
--------

    smb-dashboard --sample --scope all
    smb-dashboard --data-dir data/ --scope inventory --status low_stock
    smb-dashboard --sample --scope sales --range quarter --export sales
    smb-dashboard --sample --scope forecast --notes "Launching a new plan"
    smb-dashboard --sample --customer c1
    smb-dashboard --sample --export inventory --ids p3 p4
"""

import argparse
import asyncio
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Optional

import pandas as pd

from . import __version__
from .config import DEFAULT_CONFIG_FILE, AppConfig, load_app_config
from .engine import (
    average_order_value,
    compute_ltv_cac,
    compute_mrr,
    compute_totals,
    inventory_value,
    units_sold,
)
from .io import export_to_csv, load_directory
from .models import AIAnalysis, ForecastAssumptions
from .periods import RANGE_CHOICES, default_forecast_window, determine_range
from .sample_data import build_sample_data
from .session import DashboardSession
from .views import (
    STATUS_FILTERS,
    alerts_to_dataframe,
    chart_points,
    customer_history_to_dataframe,
    customers_to_dataframe,
    expenses_export_rows,
    filter_customers,
    filter_expenses,
    filter_products,
    filter_sales,
    goals_to_dataframe,
    group_by_month,
    inventory_export_rows,
    kpis_to_dataframe,
    product_history_to_dataframe,
    products_to_dataframe,
    revenue_expense_frame,
    round_series,
    sales_export_rows,
    select_by_ids,
    selection_export_name,
)

logger = logging.getLogger(__name__)

SCOPES = (
    "kpis",
    "monthly",
    "mrr",
    "ltv-cac",
    "goals",
    "inventory",
    "sales",
    "expenses",
    "customers",
    "alerts",
    "forecast",
    "all",
)

_AI_SCOPES = {"alerts", "forecast"}


def _build_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for the CLI."""
    ap = argparse.ArgumentParser(
        prog="smb-dashboard",
        description=(
            "SMB Dashboard - Financial Dashboard & Insights application for "
            "SMBs. Computes KPIs, monthly series, MRR, LTV/CAC, goal progress "
            "and inventory value from business records, and asks an AI "
            "service for alerts and forecasts."
        ),
    )

    # Generic options
    ap.add_argument(
        "--version",
        action="store_true",
        help="Show the installed version of smb_dashboard and exit.",
    )
    ap.add_argument(
        "--config",
        dest="config_path",
        help=(
            "Path to the main TOML configuration file. If omitted, "
            f"'{DEFAULT_CONFIG_FILE}' in the current directory is used when "
            "present, otherwise built-in defaults."
        ),
    )
    ap.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )

    # Data sources
    ap.add_argument(
        "--sample",
        action="store_true",
        help="Load the built-in demo dataset.",
    )
    ap.add_argument(
        "--data-dir",
        dest="data_dir",
        help=(
            "Directory of CSV files used to seed the session "
            "(products.csv, sales.csv, expenses.csv, customers.csv, goals.csv)."
        ),
    )

    # Scope & output
    ap.add_argument(
        "--scope",
        choices=SCOPES,
        help=(
            "Select what to render (default: kpis, or nothing when --product "
            "or --customer is given)."
        ),
    )
    ap.add_argument(
        "--product",
        dest="product_id",
        metavar="ID",
        help="Show the detail of one product: units sold and sales history.",
    )
    ap.add_argument(
        "--customer",
        dest="customer_id",
        metavar="ID",
        help="Show the detail of one customer: average order value and purchases.",
    )
    ap.add_argument(
        "--display-mode",
        dest="display_mode",
        choices=["table", "csv", "both"],
        help=(
            "Override the display mode from the configuration: 'table' "
            "(console), 'csv' (files) or 'both'."
        ),
    )
    ap.add_argument(
        "--output-dir",
        dest="output_dir",
        help="Directory where CSV files and exports are written.",
    )
    ap.add_argument(
        "--export",
        choices=["inventory", "sales", "expenses"],
        help=(
            "Export the (filtered) list to '<list>_export.csv'. With --ids "
            "(and no --delete), only those records are exported to "
            "'<list>_selection_YYYY-MM-DD.csv'."
        ),
    )

    # Filters
    ap.add_argument("--search", help="Search term for list scopes and exports.")
    ap.add_argument(
        "--status",
        choices=STATUS_FILTERS,
        default="all",
        help="Stock status filter for the inventory.",
    )
    ap.add_argument(
        "--category",
        help="Expense category filter ('all' for every category).",
    )
    ap.add_argument(
        "--range",
        dest="date_range",
        choices=RANGE_CHOICES,
        default="all",
        help="Date range filter for the sales list.",
    )

    # Forecast assumptions
    ap.add_argument(
        "--from-date",
        dest="from_date",
        help="Forecast analysis period start (YYYY-MM-DD). Default: one month ago.",
    )
    ap.add_argument(
        "--to-date",
        dest="to_date",
        help="Forecast analysis period end (YYYY-MM-DD). Default: today.",
    )
    ap.add_argument(
        "--notes",
        default="",
        help="Strategic notes sent with the forecast request.",
    )

    # Deletion
    ap.add_argument(
        "--delete",
        choices=["products", "sales", "expenses"],
        help="Delete records of this kind before rendering (requires --ids).",
    )
    ap.add_argument(
        "--ids",
        nargs="+",
        default=[],
        help="Record ids used by --delete, or by --export for a selection export.",
    )
    ap.add_argument(
        "-y",
        "--yes",
        action="store_true",
        help="Do not ask for confirmation before deleting.",
    )

    return ap


def _parse_optional_date(value: Optional[str]) -> Optional[date]:
    """
    Parse an optional CLI date argument (YYYY-MM-DD).

    Raises
    ------
    SystemExit
        If the date format is invalid.
    """
    if value is None:
        return None

    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        msg = f"Invalid date format: {value!r}. Expected YYYY-MM-DD."
        raise SystemExit(msg) from exc


def _load_config(config_path: Optional[str]) -> AppConfig:
    if config_path:
        return load_app_config(config_path)
    if Path(DEFAULT_CONFIG_FILE).is_file():
        return load_app_config()
    return AppConfig()


def _seed_session(session: DashboardSession, args, config: AppConfig) -> None:
    data_dir = Path(args.data_dir) if args.data_dir else config.data_dir
    if data_dir is not None:
        print(f"Loading records from {data_dir}...")
        session.store.load(**load_directory(data_dir))

    if args.sample or config.load_sample_data:
        session.store.load(**build_sample_data())

    store = session.store
    print(
        f"Records loaded: {len(store.products)} products, {len(store.sales)} sales, "
        f"{len(store.expenses)} expenses, {len(store.customers)} customers, "
        f"{len(store.goals)} goals."
    )
    if not (store.products or store.sales or store.expenses or store.customers):
        print("Warning: no records loaded - use --sample or --data-dir.")


def _confirm(prompt: str) -> bool:
    answer = input(f"{prompt} [y/N] ").strip().lower()
    return answer in {"y", "yes"}


def _handle_delete(session: DashboardSession, args) -> None:
    if not args.ids:
        raise SystemExit("--delete requires at least one id (--ids ID [ID ...]).")

    if not args.yes and not _confirm(
        f"Delete {len(args.ids)} {args.delete} record(s)?"
    ):
        print("Deletion cancelled.")
        return

    deleters = {
        "products": session.store.delete_products,
        "sales": session.store.delete_sales,
        "expenses": session.store.delete_expenses,
    }
    removed = deleters[args.delete](args.ids)
    print(f"Deleted {removed} {args.delete} record(s).")


class _Renderer:
    """Render DataFrames as console tables and/or timestamped CSV files."""

    def __init__(self, display_mode: str, output_dir: Path) -> None:
        self.display_mode = display_mode
        self.output_dir = output_dir
        self.timestamp = datetime.now().strftime("%Y-%m-%d-%H-%M-%S")

    @property
    def shows_tables(self) -> bool:
        return self.display_mode in {"table", "both"}

    @property
    def writes_csv(self) -> bool:
        return self.display_mode in {"csv", "both"}

    def _write(self, stem: str, df: pd.DataFrame) -> None:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / f"{stem}_{self.timestamp}.csv"
        df.to_csv(path, index=False)
        print(f"Wrote {path} ({len(df)} rows)")

    def __call__(self, title: str, stem: str, df: pd.DataFrame) -> None:
        if self.shows_tables:
            print()
            print(f"=== {title} ===")
            if df.empty:
                print("(no data)")
            else:
                print(df.to_string(index=False))

        if self.writes_csv:
            self._write(stem, df)

    def grouped(self, title: str, stem: str, groups: dict[str, pd.DataFrame]) -> None:
        """Render one table per month; the CSV file holds the flat list."""
        if self.shows_tables:
            print()
            print(f"=== {title} ===")
            if not groups:
                print("(no data)")
            for month, df in groups.items():
                print(f"--- {month} ({len(df)}) ---")
                print(df.to_string(index=False))

        if self.writes_csv:
            frames = list(groups.values())
            df = pd.concat(frames, ignore_index=True) if frames else pd.DataFrame()
            self._write(stem, df)

    def bars(self, points: list[dict], decimals: int, width: int = 40) -> None:
        """Horizontal text bar chart of ``{"name", "value"}`` points."""
        if not self.shows_tables or not points:
            return
        top = max(p["value"] for p in points)
        label_width = max(len(p["name"]) for p in points)
        for p in points:
            length = round(p["value"] / top * width) if top > 0 else 0
            print(f"{p['name']:<{label_width}} {'#' * length} {p['value']:.{decimals}f}")


def _print_product_detail(
    session: DashboardSession, product_id: str, render: _Renderer, decimals: int
) -> None:
    product = session.store.get_product(product_id)
    if product is None:
        raise SystemExit(f"Unknown product id: {product_id!r}")

    print()
    print(f"=== Product {product.id} ===")
    print(f"Name:       {product.name}")
    print(f"SKU:        {product.sku}")
    print(f"Price:      {product.price:.{decimals}f}")
    print(f"Quantity:   {'N/A' if product.is_recurring else product.quantity}")
    print(f"Recurring:  {'Yes' if product.is_recurring else 'No'}")
    print(f"Units sold: {units_sold(product.id, session.store.sales)}")
    render(
        "Sales history",
        f"product_{product.id}_sales",
        product_history_to_dataframe(product, session.store.sales, decimals),
    )


def _print_customer_detail(
    session: DashboardSession, customer_id: str, render: _Renderer, decimals: int
) -> None:
    customer = session.store.get_customer(customer_id)
    if customer is None:
        raise SystemExit(f"Unknown customer id: {customer_id!r}")

    sales = session.store.sales
    print()
    print(f"=== Customer {customer.id} ===")
    print(f"Name:             {customer.name}")
    print(f"Email:            {customer.email}")
    print(f"Customer since:   {customer.join_date.isoformat()}")
    print(f"Total spent:      {customer.total_spent:.{decimals}f}")
    print(f"Avg. order value: {average_order_value(customer, sales):.{decimals}f}")
    render(
        "Purchase history",
        f"customer_{customer.id}_purchases",
        customer_history_to_dataframe(customer, sales, decimals),
    )


def _print_analysis(analysis: AIAnalysis, decimals: int) -> None:
    print()
    print("=== 3-month forecast ===")
    forecast_df = pd.DataFrame(
        [
            {
                "month": p.month,
                "revenue": round(p.revenue, decimals),
                "expenses": round(p.expenses, decimals),
                "profit": round(p.profit, decimals),
            }
            for p in analysis.forecast
        ],
        columns=["month", "revenue", "expenses", "profit"],
    )
    print(forecast_df.to_string(index=False))

    sections = [
        ("Key trends", analysis.trends),
        ("Recommendations", analysis.recommendations),
        ("Key opportunities", analysis.key_opportunities),
        ("Potential risks", analysis.potential_risks),
    ]
    for title, items in sections:
        print()
        print(f"=== {title} ===")
        for item in items:
            print(f"- {item}")

    if analysis.kpi_analysis:
        print()
        print("=== KPI deep dive ===")
        for k in analysis.kpi_analysis:
            history = ", ".join(f"{h.month}: {h.value:g}" for h in k.history)
            print(f"- {k.kpi}: {k.value}")
            print(f"  {k.analysis}")
            if history:
                print(f"  History: {history}")


def _forecast_assumptions(args) -> ForecastAssumptions:
    """Build the forecast assumptions from the CLI arguments.

    Raises
    ------
    SystemExit
        If a date is malformed or the window is inverted.
    """
    window = default_forecast_window()
    start = _parse_optional_date(args.from_date) or window.start
    end = _parse_optional_date(args.to_date) or window.end
    try:
        return ForecastAssumptions(start=start, end=end, notes=args.notes)
    except ValueError as exc:
        raise SystemExit(str(exc)) from exc


async def _run_ai(
    session: DashboardSession,
    render: _Renderer,
    want_alerts: bool,
    assumptions: Optional[ForecastAssumptions],
    decimals: int,
) -> None:
    """Run the AI scopes on a single event loop.

    The gateway's HTTP client is bound to the loop it was first used on, so
    both requests share this loop and the session is closed before it ends.
    """
    try:
        if want_alerts:
            created = await session.refresh_alerts()
            print(f"Received {len(created)} new alert(s).")
            render(
                "Financial alerts", "alerts", alerts_to_dataframe(session.store.alerts)
            )

        if assumptions is not None:
            print(
                f"Requesting AI forecast for {assumptions.start.isoformat()} → "
                f"{assumptions.end.isoformat()}..."
            )
            analysis = await session.run_forecast(assumptions)
            if analysis is None:
                print(f"Error: {session.forecast_error}")
            else:
                _print_analysis(analysis, decimals)
    finally:
        await session.aclose()


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point for the SMB Dashboard CLI.

    This function parses command-line arguments, loads the application
    configuration, seeds a dashboard session from CSV files and/or the demo
    dataset, applies optional deletions, renders the selected scope as
    console tables and/or CSV files and finally writes the optional export.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    # --version: short-circuit and exit early.
    if args.version:
        print(f"smb_dashboard version {__version__}")
        return

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # 1) Load application configuration
    config = _load_config(args.config_path)
    decimals = config.decimals

    # 2) Build and seed the session
    session = DashboardSession(config=config)
    _seed_session(session, args, config)
    store = session.store

    # 3) Optional deletions
    if args.delete:
        _handle_delete(session, args)

    # 4) Resolve display mode and output directory
    display_mode = args.display_mode or config.display_mode
    output_dir = Path(args.output_dir) if args.output_dir else config.output_dir
    render = _Renderer(display_mode, output_dir)

    detail_requested = bool(args.product_id or args.customer_id)
    scope = args.scope or (None if detail_requested else "kpis")
    if scope is None:
        wanted = set()
    elif scope == "all":
        wanted = set(SCOPES) - {"all"}
        if not session.gateway.is_configured:
            wanted -= _AI_SCOPES
    else:
        wanted = {scope}

    products = filter_products(
        store.products, args.search, args.status, config.low_stock_threshold
    )
    sales = filter_sales(store.sales, args.search, determine_range(args.date_range))
    expenses = filter_expenses(store.expenses, args.search, args.category)

    # 5) Detail panels
    if args.product_id:
        _print_product_detail(session, args.product_id, render, decimals)
    if args.customer_id:
        _print_customer_detail(session, args.customer_id, render, decimals)

    # 6) Render scopes
    if "kpis" in wanted:
        df = kpis_to_dataframe(
            compute_totals(store.sales, store.expenses),
            inventory_value(store.products),
            len(store.customers),
            decimals,
        )
        render(f"Key figures ({config.currency})", "kpis", df)

    if "monthly" in wanted:
        render(
            "Revenue vs expenses by month",
            "monthly",
            round_series(revenue_expense_frame(store.sales, store.expenses), decimals),
        )

    if "mrr" in wanted:
        mrr = compute_mrr(store.sales, store.products)
        render("Monthly recurring revenue", "mrr", round_series(mrr, decimals))
        render.bars(chart_points(mrr, "mrr"), decimals)

    if "ltv-cac" in wanted:
        ltv_cac = compute_ltv_cac(
            store.sales, store.expenses, store.customers, config.marketing_category
        )
        render("LTV / CAC by month", "ltv_cac", round_series(ltv_cac, decimals))

    if "goals" in wanted:
        render("Goals", "goals", goals_to_dataframe(store.goals, decimals))

    if "inventory" in wanted:
        render(
            "Inventory",
            "inventory",
            products_to_dataframe(products, config.low_stock_threshold, decimals),
        )
        print(
            f"Inventory value ({len(products)} products): "
            f"{inventory_value(products):.{decimals}f} {config.currency}"
        )

    if "sales" in wanted:
        groups = {
            month: pd.DataFrame(sales_export_rows(items))
            for month, items in group_by_month(sales).items()
        }
        render.grouped("Sales", "sales", groups)

    if "expenses" in wanted:
        groups = {
            month: pd.DataFrame(expenses_export_rows(items))
            for month, items in group_by_month(expenses).items()
        }
        render.grouped("Expenses", "expenses", groups)

    if "customers" in wanted:
        customers = filter_customers(store.customers, args.search)
        render(
            "Customers",
            "customers",
            customers_to_dataframe(customers, store.sales, decimals),
        )

    ai_scopes = wanted & _AI_SCOPES
    if ai_scopes and not session.gateway.is_configured:
        for name in ("alerts", "forecast"):
            if name in ai_scopes:
                print(
                    f"AI {name} skipped: no API key found in environment variable "
                    f"{config.insights.api_key_env!r}."
                )
    elif ai_scopes:
        assumptions = (
            _forecast_assumptions(args) if "forecast" in ai_scopes else None
        )
        asyncio.run(
            _run_ai(session, render, "alerts" in ai_scopes, assumptions, decimals)
        )

    # 7) Optional export of a filtered list, or of a selection with --ids
    if args.export:
        records = {"inventory": products, "sales": sales, "expenses": expenses}[
            args.export
        ]
        to_rows = {
            "inventory": inventory_export_rows,
            "sales": sales_export_rows,
            "expenses": expenses_export_rows,
        }[args.export]

        selection = bool(args.ids) and not args.delete
        if selection:
            rows = to_rows(select_by_ids(records, args.ids))
            filename = selection_export_name(args.export, datetime.now().date())
        else:
            rows = to_rows(records)
            filename = f"{args.export}_export"

        path = export_to_csv(filename, rows, output_dir)
        if path is None and selection:
            print(f"Nothing to export: no {args.export} record matches the given ids.")
        elif path is None:
            print(f"Nothing to export: the {args.export} list is empty.")
        else:
            print(f"Exported {len(rows)} {args.export} record(s) to {path}")


if __name__ == "__main__":
    main()
