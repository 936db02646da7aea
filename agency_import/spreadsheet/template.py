from __future__ import annotations

import csv
import io

from .reader import EXPECTED_COLUMNS

"""Downloadable CSV template: header plus two example agencies."""

__all__ = [
    "TEMPLATE_FILENAME",
    "TEMPLATE_ROWS",
    "build_template_csv",
]

TEMPLATE_FILENAME = "agency-import-template.csv"

TEMPLATE_ROWS: tuple[tuple[str, ...], ...] = (
    (
        "ABC Staffing",
        "Full-service industrial staffing for construction and manufacturing",
        "https://abcstaffing.com",
        "+17135550100",
        "info@abcstaffing.com",
        "Houston, TX",
        "1995",
        "51-100",
        "Medium",
        "true",
        "false",
        "Electrician,Welder,Pipefitter",
        "TX,LA,OK",
    ),
    (
        "Pacific Construction Workforce",
        "Skilled trades staffing across the West Coast",
        "https://pacificworkforce.com",
        "+12135550199",
        "jobs@pacificworkforce.com",
        "Los Angeles, CA",
        "2008",
        "101-200",
        "Large",
        "false",
        "true",
        "Carpenter,Plumber,HVAC Technician,Electrician",
        "CA,AZ,NV",
    ),
)


def build_template_csv() -> str:
    """Header + example rows, ``\\n`` separated, no trailing newline."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(EXPECTED_COLUMNS)
    writer.writerows(TEMPLATE_ROWS)
    return buf.getvalue().rstrip("\n")
