# SMB Dashboard - Financial Dashboard & Insights application for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
I/O module for SMB Dashboard.

This module handles two kinds of CSV files:

1) Seed files (import)
   --------------------
   A session can be seeded from a directory of CSV files, one per
   collection. Column names are case-insensitive and surrounding spaces are
   ignored. Expected columns:

       products.csv   id, name, sku, quantity, price[, is_recurring]
       expenses.csv   id, date, category, description, amount
       customers.csv  id, name, email, join_date[, total_spent]
       sales.csv      id, date, product_id, product_name, customer_id,
                      customer_name, quantity, total_price
       goals.csv      id, title, type, target, deadline

   Dates use the YYYY-MM-DD format. Any other column is ignored. Invalid
   structures, dates or numbers raise a clear ValueError.

   When ``total_spent`` is absent from customers.csv, each customer's total
   is computed from sales.csv by ``load_directory``.

2) Exports
   --------
   ``export_to_csv(filename, records, output_dir)`` writes a list of flat
   records to ``<output_dir>/<filename>.csv``. The header row is the keys of
   the first record and every record becomes one row.
"""

import os
from collections import defaultdict
from pathlib import Path
from typing import Any, Optional, Union

import pandas as pd

from .models import Customer, Expense, Goal, GoalType, Product, Sale

PathLike = Union[str, "os.PathLike[str]"]

_TRUE_VALUES = {"1", "true", "yes", "y"}


def _read_normalized(path: PathLike, required: set[str], kind: str) -> pd.DataFrame:
    """Read a CSV file, lower-case its columns and check required columns."""
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    df.columns = [str(c).lower().strip() for c in df.columns]

    missing = required - set(df.columns)
    if missing:
        raise ValueError(
            f"Invalid {kind} CSV structure, missing column(s): "
            + ", ".join(sorted(missing))
        )
    return df


def _parse_dates(df: pd.DataFrame, column: str) -> list:
    try:
        parsed = pd.to_datetime(df[column], format="%Y-%m-%d", errors="raise")
    except Exception as exc:  # noqa: BLE001
        raise ValueError(f"Invalid values in '{column}' column.") from exc
    return [ts.date() for ts in parsed]


def _parse_numbers(df: pd.DataFrame, column: str, integer: bool = False) -> pd.Series:
    values = pd.to_numeric(df[column].str.strip(), errors="coerce")
    if values.isna().any() or values.isin([float("inf"), float("-inf")]).any():
        raise ValueError(f"Invalid numeric values in '{column}' column.")
    if (values < 0).any():
        raise ValueError(f"Negative values are not allowed in '{column}' column.")
    if integer:
        if (values % 1 != 0).any():
            raise ValueError(f"Whole numbers are required in '{column}' column.")
        values = values.astype("int64")
    return values


def _parse_bools(df: pd.DataFrame, column: str) -> list[bool]:
    if column not in df.columns:
        return [False] * len(df)
    return [str(v).strip().lower() in _TRUE_VALUES for v in df[column]]


def read_products(path: PathLike) -> list[Product]:
    """Read products from CSV (id, name, sku, quantity, price[, is_recurring])."""
    df = _read_normalized(path, {"id", "name", "sku", "quantity", "price"}, "products")
    quantities = _parse_numbers(df, "quantity", integer=True)
    prices = _parse_numbers(df, "price")
    recurring = _parse_bools(df, "is_recurring")

    return [
        Product(
            id=str(df["id"].iloc[i]).strip(),
            name=str(df["name"].iloc[i]),
            sku=str(df["sku"].iloc[i]),
            quantity=int(quantities.iloc[i]),
            price=float(prices.iloc[i]),
            is_recurring=recurring[i],
        )
        for i in range(len(df))
    ]


def read_expenses(path: PathLike) -> list[Expense]:
    """Read expenses from CSV (id, date, category, description, amount)."""
    df = _read_normalized(
        path, {"id", "date", "category", "description", "amount"}, "expenses"
    )
    dates = _parse_dates(df, "date")
    amounts = _parse_numbers(df, "amount")

    return [
        Expense(
            id=str(df["id"].iloc[i]).strip(),
            date=dates[i],
            category=str(df["category"].iloc[i]),
            description=str(df["description"].iloc[i]),
            amount=float(amounts.iloc[i]),
        )
        for i in range(len(df))
    ]


def read_customers(path: PathLike) -> list[Customer]:
    """
    Read customers from CSV (id, name, email, join_date[, total_spent]).

    A missing ``total_spent`` column yields 0.0 for every customer.
    """
    df = _read_normalized(path, {"id", "name", "email", "join_date"}, "customers")
    join_dates = _parse_dates(df, "join_date")
    if "total_spent" in df.columns:
        totals = [float(v) for v in _parse_numbers(df, "total_spent")]
    else:
        totals = [0.0] * len(df)

    return [
        Customer(
            id=str(df["id"].iloc[i]).strip(),
            name=str(df["name"].iloc[i]),
            email=str(df["email"].iloc[i]),
            total_spent=totals[i],
            join_date=join_dates[i],
        )
        for i in range(len(df))
    ]


def read_sales(path: PathLike) -> list[Sale]:
    """Read sales from CSV.

    Raises:
        ValueError: on a bad structure, an invalid date or number, or a
            quantity lower than 1.
    """
    df = _read_normalized(
        path,
        {
            "id",
            "date",
            "product_id",
            "product_name",
            "customer_id",
            "customer_name",
            "quantity",
            "total_price",
        },
        "sales",
    )
    dates = _parse_dates(df, "date")
    quantities = _parse_numbers(df, "quantity", integer=True)
    if (quantities < 1).any():
        raise ValueError("Sale quantities must be at least 1.")
    totals = _parse_numbers(df, "total_price")

    return [
        Sale(
            id=str(df["id"].iloc[i]).strip(),
            date=dates[i],
            product_id=str(df["product_id"].iloc[i]).strip(),
            product_name=str(df["product_name"].iloc[i]),
            customer_id=str(df["customer_id"].iloc[i]).strip(),
            customer_name=str(df["customer_name"].iloc[i]),
            quantity=int(quantities.iloc[i]),
            total_price=float(totals.iloc[i]),
        )
        for i in range(len(df))
    ]


def read_goals(path: PathLike) -> list[Goal]:
    """Read goals from CSV (id, title, type, target, deadline)."""
    df = _read_normalized(path, {"id", "title", "type", "target", "deadline"}, "goals")
    deadlines = _parse_dates(df, "deadline")
    targets = _parse_numbers(df, "target")
    if (targets <= 0).any():
        raise ValueError("Goal targets must be positive.")

    return [
        Goal(
            id=str(df["id"].iloc[i]).strip(),
            title=str(df["title"].iloc[i]),
            type=GoalType.parse(df["type"].iloc[i]),
            target=float(targets.iloc[i]),
            current=0.0,
            deadline=deadlines[i],
        )
        for i in range(len(df))
    ]


def load_directory(directory: PathLike) -> dict[str, list]:
    """
    Read every seed file present in ``directory``.

    Missing files yield empty collections. When customers.csv has no
    ``total_spent`` column, totals are computed from the loaded sales.

    Returns
    -------
    dict[str, list]
        Keyword arguments for ``RecordStore.load`` (products, sales,
        expenses, customers, goals).

    Raises
    ------
    FileNotFoundError
        If ``directory`` does not exist.
    """
    base = Path(directory)
    if not base.is_dir():
        raise FileNotFoundError(f"Data directory not found: {base}")

    def _maybe(name: str, reader) -> list:
        path = base / name
        return reader(path) if path.is_file() else []

    products = _maybe("products.csv", read_products)
    sales = _maybe("sales.csv", read_sales)
    expenses = _maybe("expenses.csv", read_expenses)
    customers = _maybe("customers.csv", read_customers)
    goals = _maybe("goals.csv", read_goals)

    customers_path = base / "customers.csv"
    if customers and "total_spent" not in _header(customers_path):
        spent: dict[str, float] = defaultdict(float)
        for s in sales:
            spent[s.customer_id] += s.total_price
        customers = [
            Customer(
                id=c.id,
                name=c.name,
                email=c.email,
                total_spent=spent.get(c.id, 0.0),
                join_date=c.join_date,
            )
            for c in customers
        ]

    return {
        "products": products,
        "sales": sales,
        "expenses": expenses,
        "customers": customers,
        "goals": goals,
    }


def _header(path: Path) -> set[str]:
    columns = pd.read_csv(path, nrows=0).columns
    return {str(c).lower().strip() for c in columns}


def export_to_csv(
    filename: str,
    records: list[dict[str, Any]],
    output_dir: PathLike,
) -> Optional[Path]:
    """
    Write flat records to ``<output_dir>/<filename>.csv``.

    Parameters
    ----------
    filename:
        Name of the export without extension (e.g. "expenses_export").
    records:
        Flat key/value records. The header row is the keys of the first
        record, in order; keys missing from later records are left empty
        and extra keys are ignored.
    output_dir:
        Directory where the file is written (created if needed).

    Returns
    -------
    pathlib.Path or None
        Path of the written file, or None when ``records`` is empty (nothing
        is written).
    """
    if not records:
        return None

    header = list(records[0].keys())
    df = pd.DataFrame(records).reindex(columns=header)

    out_dir = Path(output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    name = filename if filename.endswith(".csv") else f"{filename}.csv"
    path = out_dir / name
    df.to_csv(path, index=False)
    return path
