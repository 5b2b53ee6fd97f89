# quotegrid/grid/reconcile.py
"""Match parsed grid lines against the stored quote.

A parsed line is an edit when its hidden key names a stored line; it is new
when it has no key (an inserted row) or when the id the kind relies on is
missing.  Stored lines whose key no longer appears were deleted in the grid.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .entities import Bom, QuoteSummary, to_int


@dataclass
class LineChanges:
    created: List[Tuple[int, Any]] = field(default_factory=list)
    updated: List[Tuple[int, Any]] = field(default_factory=list)
    deleted: List[Any] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not (self.created or self.updated or self.deleted)

    def to_dict(self) -> dict:
        return {
            "created": [{"position": p, "line": e.to_dict()} for p, e in self.created],
            "updated": [{"position": p, "line": e.to_dict()} for p, e in self.updated],
            "deleted": list(self.deleted),
        }


def reconcile_lines(existing: Sequence, parsed: Sequence, id_attr: Optional[str] = None) -> LineChanges:
    """Diff one ordered list of lines.  ``position`` is the parsed index, so
    applying the changes also restores the grid's row order."""
    changes = LineChanges()
    known = {line.key for line in existing if line.key is not None}
    claimed = set()

    for pos, line in enumerate(parsed):
        key = line.key
        missing_id = id_attr is not None and to_int(getattr(line, id_attr, 0)) <= 0
        if key is None or missing_id:
            changes.created.append((pos, line))
        elif key not in known:
            logging.warning("Line key %r is unknown; treating the row as new", key)
            changes.created.append((pos, line))
        elif key in claimed:
            # A copied row repeats its source's key; only the first keeps it.
            changes.created.append((pos, line))
        else:
            claimed.add(key)
            changes.updated.append((pos, line))

    changes.deleted = [k for k in (line.key for line in existing) if k is not None and k not in claimed]
    return changes


@dataclass
class BomChanges:
    bom: Bom
    is_new: bool
    items: LineChanges = field(default_factory=LineChanges)
    labor: LineChanges = field(default_factory=LineChanges)
    expenses: LineChanges = field(default_factory=LineChanges)
    # quantity of the BOM's Summary line, None when the Summary was not parsed
    quantity: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "id": self.bom.id,
            "name": self.bom.name,
            "new": self.is_new,
            "quantity": self.quantity,
            "items": self.items.to_dict(),
            "labor": self.labor.to_dict(),
            "expenses": self.expenses.to_dict(),
        }


@dataclass
class QuoteChanges:
    default_markup: float = 0.0
    items: LineChanges = field(default_factory=LineChanges)
    boms: List[BomChanges] = field(default_factory=list)
    deleted_boms: List[int] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "defaultMU": self.default_markup,
            "items": self.items.to_dict(),
            "boms": [b.to_dict() for b in self.boms],
            "deletedBoms": list(self.deleted_boms),
        }


def reconcile_bom(stored: Optional[Bom], parsed: Bom) -> BomChanges:
    if stored is None:
        return BomChanges(
            bom=parsed,
            is_new=True,
            items=reconcile_lines([], parsed.items),
            labor=reconcile_lines([], parsed.labor),
            expenses=reconcile_lines([], parsed.expenses),
        )
    return BomChanges(
        bom=parsed,
        is_new=False,
        items=reconcile_lines(stored.items, parsed.items, id_attr="id"),
        labor=reconcile_lines(stored.labor, parsed.labor, id_attr="id"),
        expenses=reconcile_lines(stored.expenses, parsed.expenses),
    )


def reconcile_quote(stored: QuoteSummary, parsed: QuoteSummary) -> QuoteChanges:
    by_id: Dict[int, Bom] = {b.id: b for b in stored.boms if b.id > 0}
    changes = QuoteChanges(default_markup=parsed.default_markup)
    changes.items = reconcile_lines(
        [i for i in stored.items if i.bom_id == 0],
        [i for i in parsed.items if i.bom_id == 0],
    )
    rollups = {i.description: i for i in parsed.items if i.bom_id != 0}

    seen = set()
    for bom in parsed.boms:
        match = by_id.get(bom.id) if bom.id > 0 and bom.id not in seen else None
        if bom.id > 0 and match is None:
            logging.warning("BOM %r refers to unknown id %s; saving it as new", bom.name, bom.id)
        if match is not None:
            seen.add(bom.id)
        bom_changes = reconcile_bom(match, bom)
        line = rollups.get(bom.name)
        if line is not None:
            bom_changes.quantity = line.quantity
        changes.boms.append(bom_changes)

    changes.deleted_boms = [bom_id for bom_id in by_id if bom_id not in seen]
    return changes
