from io import BytesIO

import pandas as pd

from app.schemas.ledger import PaddyLedgerReport, RiceStockReport

PADDY_COLUMNS = [
    "date",
    "section",
    "movement_type",
    "variety",
    "bags",
    "kunchinittu",
    "warehouse",
    "from",
    "to",
    "outturn_code",
]

RICE_COLUMNS = [
    "date",
    "section",
    "movement_type",
    "product",
    "packaging",
    "bag_size_kg",
    "location",
    "outturn_code",
    "qtls",
    "bags",
]


def paddy_ledger_frame(report: PaddyLedgerReport) -> pd.DataFrame:
    """One row per opening line, movement line and closing line of every day."""
    rows = []
    for day in report.days:
        for line in day.opening_stock:
            rows.append(
                {
                    "date": day.date,
                    "section": "opening",
                    "variety": line.variety,
                    "bags": line.bags,
                    "kunchinittu": line.kunchinittu,
                    "warehouse": line.warehouse,
                    "outturn_code": line.outturn_code,
                }
            )
        movements = day.daily_movements
        for section in ("purchase", "shifting", "production_shifting", "rice_production", "loading", "clearing"):
            for line in getattr(movements, section):
                rows.append(
                    {
                        "date": day.date,
                        "section": section,
                        "movement_type": line.movement_type,
                        "variety": line.variety,
                        "bags": line.bags,
                        "from": line.from_label,
                        "to": line.to_label,
                        "outturn_code": line.outturn_code,
                    }
                )
        for line in day.closing_stock:
            rows.append(
                {
                    "date": day.date,
                    "section": "closing",
                    "variety": line.variety,
                    "bags": line.bags,
                    "kunchinittu": line.kunchinittu,
                    "warehouse": line.warehouse,
                    "outturn_code": line.outturn_code,
                }
            )
    return pd.DataFrame(rows, columns=PADDY_COLUMNS)


def rice_stock_frame(report: RiceStockReport) -> pd.DataFrame:
    rows = []
    for day in report.days:
        for section, lines in (("opening", day.opening_stock), ("closing", day.closing_stock)):
            for line in lines:
                rows.append(
                    {
                        "date": day.date,
                        "section": section,
                        "product": line.product_label,
                        "packaging": line.packaging,
                        "bag_size_kg": line.bag_size_kg,
                        "location": line.location,
                        "outturn_code": line.outturn_code,
                        "qtls": line.qtls,
                        "bags": line.bags,
                    }
                )
        for line in day.productions:
            rows.append(
                {
                    "date": day.date,
                    "section": "production",
                    "movement_type": line.movement_type.value,
                    "product": line.product_label,
                    "packaging": line.packaging,
                    "bag_size_kg": line.bag_size_kg,
                    "location": line.location,
                    "outturn_code": line.outturn_code,
                    "qtls": line.qtls,
                    "bags": line.bags,
                }
            )

    df = pd.DataFrame(rows, columns=RICE_COLUMNS)
    if df.empty:
        return df
    section_order = {"opening": 0, "production": 1, "closing": 2}
    df["_order"] = df["section"].map(section_order)
    df = df.sort_values(["date", "_order"], kind="stable").drop(columns="_order")
    return df.reset_index(drop=True)


def frame_to_csv_bytes(df: pd.DataFrame) -> bytes:
    buffer = BytesIO()
    df.to_csv(buffer, index=False)
    return buffer.getvalue()
