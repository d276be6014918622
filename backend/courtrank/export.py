"""CSV and PDF renderings of standings tables."""

import csv
import io
from collections.abc import Iterable
from typing import Any

from fpdf import FPDF

from .schemas import League, LeagueStanding, StandingRow

LEAGUE_CSV_FIELDS = [
    "position",
    "entity_name",
    "account_id",
    "player_category",
    "total_points",
    "tournaments_played",
    "best_position",
]

TOURNAMENT_CSV_FIELDS = [
    "group_name",
    "position",
    "display_name",
    "matches_played",
    "wins",
    "draws",
    "losses",
    "points_for",
    "points_against",
    "point_difference",
    "points",
    "final_position",
]

PDF_HEADERS = ["#", "Player", "Points", "Tournaments", "Best Pos."]
PDF_COL_WIDTHS = [15, 85, 25, 35, 30]
PDF_COL_ALIGN = ["C", "L", "C", "C", "C"]


def _write_csv(fieldnames: list[str], records: Iterable[dict[str, Any]]) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=fieldnames, extrasaction="ignore")
    writer.writeheader()
    for record in records:
        writer.writerow({key: "" if value is None else value for key, value in record.items()})
    return buffer.getvalue()


def league_standings_csv(rows: Iterable[LeagueStanding]) -> str:
    return _write_csv(LEAGUE_CSV_FIELDS, (row.model_dump() for row in rows))


def tournament_standings_csv(rows: Iterable[StandingRow]) -> str:
    return _write_csv(TOURNAMENT_CSV_FIELDS, (row.model_dump(exclude={"members"}) for row in rows))


def _pdf_text(value: str) -> str:
    # Core fonts only cover latin-1.
    return value.encode("latin-1", "replace").decode("latin-1")


def _draw_league_table(pdf: FPDF, rows: list[LeagueStanding]) -> None:
    pdf.set_font("Helvetica", "B", 10)
    pdf.set_fill_color(52, 73, 94)
    pdf.set_text_color(255, 255, 255)
    for width, header in zip(PDF_COL_WIDTHS, PDF_HEADERS):
        pdf.cell(width, 8, header, border=1, fill=True, align="C")
    pdf.ln()

    pdf.set_text_color(0, 0, 0)
    pdf.set_font("Helvetica", "", 9)
    for index, row in enumerate(rows, start=1):
        if index % 2 == 0:
            pdf.set_fill_color(236, 240, 241)
        else:
            pdf.set_fill_color(255, 255, 255)

        values = [
            str(row.position),
            _pdf_text(row.entity_name),
            str(row.total_points),
            str(row.tournaments_played),
            str(row.best_position) if row.best_position is not None else "-",
        ]
        for width, align, value in zip(PDF_COL_WIDTHS, PDF_COL_ALIGN, values):
            pdf.cell(width, 7, value, border=1, fill=True, align=align)
        pdf.ln()


def league_standings_pdf(league: League, rows: Iterable[LeagueStanding], category: str = "all") -> bytes:
    """One-page league table; ``rows`` are already filtered and numbered for ``category``."""
    rows = list(rows)

    pdf = FPDF()
    pdf.set_auto_page_break(auto=True, margin=20)
    pdf.add_page()

    pdf.set_font("Helvetica", "B", 20)
    pdf.cell(0, 16, _pdf_text(league.name), new_x="LMARGIN", new_y="NEXT", align="C")

    season = ""
    if league.start_date or league.end_date:
        start = league.start_date.isoformat() if league.start_date else "?"
        end = league.end_date.isoformat() if league.end_date else "?"
        season = f"  |  Season {start} to {end}"
    category_label = "All categories" if category == "all" else f"Category: {category}"
    pdf.set_font("Helvetica", "", 11)
    pdf.cell(0, 8, _pdf_text(f"{category_label}{season}"), new_x="LMARGIN", new_y="NEXT", align="C")
    pdf.ln(6)

    if not rows:
        pdf.set_font("Helvetica", "I", 11)
        pdf.cell(0, 10, "No standings recorded", new_x="LMARGIN", new_y="NEXT", align="C")
    else:
        _draw_league_table(pdf, rows)

    return bytes(pdf.output())
