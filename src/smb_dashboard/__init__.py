# SMB Dashboard - Financial Dashboard & Insights application for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
SMB Dashboard
-------------

A Python-based financial dashboard core for small businesses. It keeps the
business records of a session in memory and derives everything a dashboard
needs from them.

Main capabilities:
- in-memory record store for products, sales, expenses, customers, goals
  and recent AI alerts, with change notification,
- metrics engine: totals, monthly revenue/expense series, MRR, LTV/CAC by
  month, goal progress, customer average order value, inventory valuation,
- AI insight gateway (OpenAI): proactive financial alerts and a 3-month
  forecast with a strategic overview,
- debounced alert refresh on every change to sales or expenses,
- CSV import of seed data and CSV export of lists,
- a command-line interface rendering every view as tables or CSV files.

SMB Dashboard separates records (store), computation (engine), AI insights
(insights, scheduler) and presentation (views, CLI).


Version: 0.1.0

Usage:
    smb-dashboard --help
"""

__all__ = ["engine", "store", "views", "io", "insights"]

__version__ = "0.1.0"
