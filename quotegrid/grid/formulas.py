# quotegrid/grid/formulas.py
"""Formula synthesis: row templates, pricing, aggregates, cross-sheet links."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Tuple

from .address import absolute_cell, sheet_cell
from .directives import SectionSpan
from .errors import FormulaTemplateError

SUMMARY_SHEET = "Summary"
DEFAULT_MARKUP_CELL = f"{SUMMARY_SHEET}!{absolute_cell('G', 2)}"

# Row templates; "?" is replaced by the row number.
EXTENSION = "A?*D?"
EXTENDED_QUOTE = "A?*F?"
# quote = cost * (1 + sign * markup); sign is -1 for a discounted row and the
# markup falls back to the shared default cell when the row has none.
QUOTE_PRICE = 'D?*(1+IF(I?="Yes",-1,1)*IF(ISNUMBER(H?),H?,' + DEFAULT_MARKUP_CELL + "))"

# Section kinds as they appear in the sentinel column.
ITEMS = "Items"
LABOR = "Labor"
EXPENSES = "Expenses"
TOTAL = "Total"


def template(pattern: str, row: int, bounds: Optional[Tuple[int, int]] = None) -> str:
    """Substitute every ``?`` in ``pattern`` with ``row`` and prefix ``=``.

    ``bounds`` is the ``(first, last)`` data-row span the caller claims the
    row belongs to; a row outside it is a layout bug and raises.
    """
    if row < 1:
        raise FormulaTemplateError(f"Row {row} is not a sheet row")
    if bounds is not None:
        first, last = bounds
        if "?" not in pattern:
            raise FormulaTemplateError(f"Pattern {pattern!r} has no row placeholder")
        if not first <= row <= last:
            raise FormulaTemplateError(
                f"Row {row} is outside its section rows {first}..{last} for {pattern!r}"
            )
    return "=" + pattern.replace("?", str(row))


def sum_expr(col: str, first: int, last: int) -> str:
    return f"SUM({col}{first}:{col}{last})"


def sumifs_expr(col: str, criteria_col: str, first: int, last: int) -> str:
    """Sum ``col`` over rows whose ``criteria_col`` is not blank.

    Labor group header rows leave the price cells blank, so this skips their
    subtotals and counts every role exactly once.
    """
    return (
        f"SUMIFS({col}{first}:{col}{last},"
        f'{criteria_col}{first}:{criteria_col}{last},"<>")'
    )


def section_aggregates(kind: str, span: SectionSpan) -> Optional[Tuple[str, str]]:
    """(cost, quote) aggregate expressions for one section, ``None`` if empty."""
    if not span.present:
        return None
    first, last = span.first_row, span.last_row
    if kind == LABOR:
        return sumifs_expr("E", "D", first, last), sumifs_expr("G", "F", first, last)
    return sum_expr("E", first, last), sum_expr("G", first, last)


def total_formulas(spans: Iterable[Tuple[str, SectionSpan]]) -> Tuple[str, str]:
    """Total-row cost/quote formulas over the sections that have rows."""
    cost, quote = [], []
    for kind, span in spans:
        agg = section_aggregates(kind, span)
        if agg is None:
            continue
        cost.append(agg[0])
        quote.append(agg[1])
    return "=" + ("+".join(cost) or "0"), "=" + ("+".join(quote) or "0")


def markup_cell_value(markup_percent: float):
    """Markup as stored in the MU% column: a fraction, blank when unset."""
    return markup_percent / 100.0 if markup_percent and markup_percent > 0 else ""


@dataclass
class LaborRefs:
    """Additive references to one labor role across every BOM using it."""
    qty: str = ""
    cost: str = ""
    quote: str = ""

    def add(self, sheet: str, row: int) -> None:
        sep = "+" if self.qty else ""
        self.qty += sep + sheet_cell(sheet, "A", row)
        self.cost += sep + sheet_cell(sheet, "D", row)
        self.quote += sep + sheet_cell(sheet, "F", row)

    def extend(self, other: "LaborRefs") -> None:
        if not other.qty:
            return
        sep = "+" if self.qty else ""
        self.qty += sep + other.qty
        self.cost += sep + other.cost
        self.quote += sep + other.quote


@dataclass
class SummaryFormulas:
    """Cross-sheet addresses recorded while building BOM sheets.

    Each BOM build returns its own instance; the Summary build receives the
    merge of all of them, folded in BOM order.
    """
    cost: Dict[str, str] = field(default_factory=dict)
    quote: Dict[str, str] = field(default_factory=dict)
    labor: Dict[Tuple[str, int], LaborRefs] = field(default_factory=dict)

    def record_total(self, bom_name: str, row: int) -> None:
        self.cost[bom_name] = f"E{row}"
        self.quote[bom_name] = f"G{row}"

    def add_labor(self, group: str, labor_id: int, sheet: str, row: int) -> None:
        self.labor.setdefault((group, labor_id), LaborRefs()).add(sheet, row)

    def labor_refs(self, group: str, labor_id: int) -> Optional[LaborRefs]:
        return self.labor.get((group, labor_id))

    def merge(self, other: "SummaryFormulas") -> "SummaryFormulas":
        self.cost.update(other.cost)
        self.quote.update(other.quote)
        for key, refs in other.labor.items():
            self.labor.setdefault(key, LaborRefs()).extend(refs)
        return self

    def bom_cost_ref(self, bom_name: str) -> Optional[str]:
        cell = self.cost.get(bom_name)
        return None if cell is None else _qualify(bom_name, cell)

    def bom_quote_ref(self, bom_name: str) -> Optional[str]:
        cell = self.quote.get(bom_name)
        return None if cell is None else _qualify(bom_name, cell)

    def to_dict(self) -> dict:
        return {
            "cost": dict(self.cost),
            "quote": dict(self.quote),
            "labor": [
                {"group": g, "id": i, "qty": r.qty, "cost": r.cost, "quote": r.quote}
                for (g, i), r in self.labor.items()
            ],
        }


def _qualify(sheet: str, cell: str) -> str:
    quoted = sheet.replace("'", "''")
    return f"'{quoted}'!{cell}"
