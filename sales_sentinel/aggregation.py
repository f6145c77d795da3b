"""Weekly sales rows -> per-branch SalesRecords.

The dashboard keeps one row per (year, quarter, week, channel, branch) with
``total_revenue`` and ``ad_cost``. This module filters those rows to a
reporting period, breaks them down by branch, channel or week, and builds
the SalesRecord list the alert engine consumes.

Usage:
    rows = load_sales_rows("data/sales_2025.csv")
    q1 = filter_period(rows, "quarter", "Q1", year=2025)
    records = to_sales_records(q1, period="Q1")
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

import pandas as pd

from .metrics import safe_ratio
from .models import SalesRecord

logger = logging.getLogger("sentinel.aggregation")

NUMERIC_COLUMNS = ("year", "week", "total_revenue", "ad_cost", "profit")
REQUIRED_ROW_COLUMNS = ("branch", "total_revenue", "ad_cost")
ROW_COLUMNS = ("quarter", "year", "week", "channel", "branch", "total_revenue", "ad_cost")
PERIOD_COLUMNS = {
    "week": ("year", "week"),
    "quarter": ("year", "quarter"),
    "month": ("year", "week"),
}


def _normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    df = df.copy()
    df.columns = [str(c).strip().lower().replace(" ", "_") for c in df.columns]
    for col in NUMERIC_COLUMNS:
        if col in df.columns:
            df[col] = pd.to_numeric(df[col], errors="coerce").fillna(0)
    return df


def _parse_int(value: str | int, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def load_sales_rows(path: str | Path) -> pd.DataFrame:
    """Read weekly sales rows from CSV and normalize column names.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If required columns are missing.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Missing file: {path}")

    df = _normalize_columns(pd.read_csv(path))
    missing = [c for c in REQUIRED_ROW_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"{path.name} is missing columns: {', '.join(missing)}")

    logger.info("Loaded %d sales rows from %s", len(df), path)
    return df


def frame_from_rows(rows: Iterable[Mapping[str, Any]]) -> pd.DataFrame:
    """Build a normalized sales-row frame from already-parsed rows."""
    rows = list(rows)
    if not rows:
        return pd.DataFrame(columns=list(ROW_COLUMNS))
    return _normalize_columns(pd.DataFrame(rows))


def load_records(path: str | Path, period: str = "") -> list[SalesRecord]:
    """Load SalesRecords from JSON, a branch-level CSV, or weekly rows.

    JSON must be a list of record objects. A CSV with a ``revenue`` column
    is read as one record per row; a CSV with ``total_revenue`` is treated
    as weekly rows and aggregated per branch.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Missing file: {path}")

    if path.suffix.lower() == ".json":
        raw = json.loads(path.read_text(encoding="utf-8"))
        return [SalesRecord.model_validate(item) for item in raw]

    df = _normalize_columns(pd.read_csv(path))
    if "total_revenue" in df.columns:
        missing = [c for c in REQUIRED_ROW_COLUMNS if c not in df.columns]
        if missing:
            raise ValueError(f"{path.name} is missing columns: {', '.join(missing)}")
        return to_sales_records(df, period=period)
    if "revenue" in df.columns and "branch" in df.columns:
        df = df.fillna({"revenue": 0, "profit": 0, "roi": 0, "growth": 0})
        df["branch"] = df["branch"].astype(str)
        df["period"] = (
            df["period"].fillna(period).astype(str) if "period" in df.columns else period
        )
        return [
            SalesRecord.model_validate(row)
            for row in df.to_dict(orient="records")
        ]
    raise ValueError(
        f"{path.name} has neither branch records (revenue) nor weekly rows "
        f"(total_revenue)"
    )


# ---------------------------------------------------------------------------
# Filtering
# ---------------------------------------------------------------------------


def filter_period(
    df: pd.DataFrame,
    time_type: str | None,
    time_value: str | None,
    year: int | str = 2025,
) -> pd.DataFrame:
    """Restrict rows to one week, month or quarter of ``year``.

    A month spans four weeks: month m covers weeks (m-1)*4+1 .. m*4.
    Non-numeric week or month values fall back to the first one. An unknown
    ``time_type`` or a missing value leaves the frame unfiltered.

    Raises:
        ValueError: If the frame lacks the columns the period needs.
    """
    if not time_type or not time_value:
        return df
    if time_type not in PERIOD_COLUMNS:
        logger.warning("Unknown time_type %r, returning unfiltered rows", time_type)
        return df

    missing = [c for c in PERIOD_COLUMNS[time_type] if c not in df.columns]
    if missing:
        raise ValueError(
            f"Cannot filter by {time_type}: missing columns {', '.join(missing)}"
        )

    in_year = df["year"] == _parse_int(year, 2025)

    if time_type == "week":
        week = _parse_int(time_value, 1)
        return df[in_year & (df["week"] == week)]
    if time_type == "quarter":
        return df[in_year & (df["quarter"] == time_value)]

    month = _parse_int(time_value, 1)
    start_week, end_week = (month - 1) * 4 + 1, month * 4
    return df[in_year & df["week"].between(start_week, end_week)]


def filter_branch(df: pd.DataFrame, branch: str | None) -> pd.DataFrame:
    if not branch or branch == "all":
        return df
    return df[df["branch"] == branch]


def filter_channel(df: pd.DataFrame, channel: str | None) -> pd.DataFrame:
    if not channel or channel == "all":
        return df
    if "channel" not in df.columns:
        raise ValueError("Cannot filter by channel: missing column channel")
    return df[df["channel"] == channel]


# ---------------------------------------------------------------------------
# Breakdowns
# ---------------------------------------------------------------------------


def summarize_frame(df: pd.DataFrame) -> dict[str, float]:
    total_revenue = float(df["total_revenue"].sum())
    total_ad_cost = float(df["ad_cost"].sum())
    return {
        "total_revenue": total_revenue,
        "total_ad_cost": total_ad_cost,
        "avg_roi": safe_ratio(total_revenue, total_ad_cost),
    }


def breakdown(df: pd.DataFrame, key: str) -> pd.DataFrame:
    """Revenue, ad cost, ROI and revenue share per ``key`` (branch or channel).

    A single group always gets a 100% share.
    """
    grouped = (
        df.groupby(key, sort=True)[["total_revenue", "ad_cost"]]
        .sum()
        .rename(columns={"total_revenue": "revenue"})
    )
    grouped["roi"] = [
        safe_ratio(rev, cost) for rev, cost in zip(grouped["revenue"], grouped["ad_cost"])
    ]
    total_revenue = float(grouped["revenue"].sum())
    if len(grouped) == 1:
        grouped["percentage"] = 100.0
    else:
        grouped["percentage"] = [
            safe_ratio(rev, total_revenue) * 100 for rev in grouped["revenue"]
        ]
    return grouped


def breakdown_to_dict(table: pd.DataFrame) -> dict[str, dict[str, float]]:
    """Flatten a ``breakdown`` table to {group: {revenue, ad_cost, roi, percentage}}."""
    return {
        str(name): {col: float(row[col]) for col in table.columns}
        for name, row in table.iterrows()
    }


def weekly_revenue(df: pd.DataFrame) -> dict[int, float]:
    """Week number -> revenue, in ascending week order."""
    series = df.groupby("week", sort=True)["total_revenue"].sum()
    return {int(week): float(rev) for week, rev in series.items()}


def _branch_growth(branch_rows: pd.DataFrame) -> float:
    """Percent change between the branch's last two weeks of revenue."""
    order = [c for c in ("year", "week") if c in branch_rows.columns]
    if "week" not in order:
        return 0.0
    series = branch_rows.groupby(order, sort=True)["total_revenue"].sum()
    if len(series) < 2:
        return 0.0
    previous, latest = float(series.iloc[-2]), float(series.iloc[-1])
    return safe_ratio(latest - previous, previous) * 100


def to_sales_records(df: pd.DataFrame, period: str = "") -> list[SalesRecord]:
    """Build one SalesRecord per branch.

    Profit comes from the ``profit`` column when present, otherwise it is
    revenue minus ad cost. Growth is week-over-week revenue change.
    """
    if df.empty:
        return []

    by_branch = breakdown(df, "branch")
    has_profit = "profit" in df.columns
    records: list[SalesRecord] = []

    for branch, branch_rows in df.groupby("branch", sort=True):
        row = by_branch.loc[branch]
        if has_profit:
            profit = float(branch_rows["profit"].sum())
        else:
            profit = float(row["revenue"] - row["ad_cost"])
        records.append(
            SalesRecord(
                branch=str(branch),
                revenue=float(row["revenue"]),
                profit=profit,
                roi=float(row["roi"]),
                growth=_branch_growth(branch_rows),
                period=period,
            )
        )
    return records
