# quotegrid/grid/entities.py
"""Structured quote data handled by the grid engine.

The JSON shape accepted by ``from_dict`` is the data provider's:
``{defaultMU, items[], boms[], units[], expAccounts[], defaultLabor[]}``.
``to_dict`` writes the same keys back so a parsed grid can be posted as a
save payload.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

# Catalog id of the placeholder "new item": the row shows the free text the
# user typed instead of a catalog name.
NEW_ITEM = 3757

# Unit family reserved for labor; never offered on item rows.
LABOR_UNITS_TYPE = 3


def to_int(value: Any, default: int = 0) -> int:
    if value is None or value == "":
        return default
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default


def to_float(value: Any, default: float = 0.0) -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def to_number(value: Any, default: float = 0):
    """Int when the value is integral, float otherwise."""
    num = to_float(value, default)
    return int(num) if float(num).is_integer() else num


def parse_discount(value: Any) -> Optional[bool]:
    """Tri-state discount flag from provider ("T"/"F") or grid ("Yes"/"No")."""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("t", "true", "yes", "y", "1"):
        return True
    if text in ("f", "false", "no", "n", "0"):
        return False
    return None


def discount_label(flag: Optional[bool]) -> str:
    return "Yes" if flag else "No"


def _key(value: Any):
    return None if value is None or value == "" else value


@dataclass
class Item:
    id: int = 0
    name: str = ""
    new_name: Optional[str] = None
    description: str = ""
    new_description: Optional[str] = None
    quantity: int = 0
    unit_price: float = 0.0
    markup_percent: float = 0.0
    discount: Optional[bool] = None
    units: str = ""
    units_type: Any = None
    vendor_id: int = 0
    vendor: str = ""
    new_vendor: Optional[str] = None
    manufacturer: str = ""
    part_number: str = ""
    key: Any = None
    bom_id: int = 0

    @property
    def is_new_item(self) -> bool:
        return self.id == NEW_ITEM

    @property
    def display_name(self) -> str:
        if self.is_new_item and self.new_name:
            return self.new_name
        return self.name or ""

    @property
    def display_description(self) -> str:
        if self.is_new_item and self.new_description:
            return self.new_description
        return self.description or ""

    @property
    def display_vendor(self) -> str:
        if self.vendor_id:
            return self.vendor or ""
        return self.new_vendor or self.vendor or ""

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Item":
        return cls(
            id=to_int(d.get("id", d.get("itemId"))),
            name=d.get("name") or "",
            new_name=d.get("newItem", d.get("newName")),
            description=d.get("description") or "",
            new_description=d.get("newDescription"),
            quantity=max(0, to_int(d.get("quantity"))),
            unit_price=max(0.0, to_float(d.get("price", d.get("unitPrice")))),
            markup_percent=to_float(d.get("markUp", d.get("markupPercent"))),
            discount=parse_discount(d.get("discount")),
            units=d.get("units") or "",
            units_type=d.get("unitsType"),
            vendor_id=to_int(d.get("vendorId")),
            vendor=d.get("vendor") or "",
            new_vendor=d.get("newVendor"),
            manufacturer=d.get("manufacturer") or "",
            part_number=d.get("mpn", d.get("partNumber")) or "",
            key=_key(d.get("key")),
            bom_id=to_int(d.get("bomId")),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "newItem": self.new_name,
            "description": self.description,
            "newDescription": self.new_description,
            "quantity": self.quantity,
            "price": self.unit_price,
            "markUp": self.markup_percent,
            "discount": None if self.discount is None else discount_label(self.discount),
            "units": self.units,
            "unitsType": self.units_type,
            "vendorId": self.vendor_id,
            "vendor": self.vendor,
            "newVendor": self.new_vendor,
            "manufacturer": self.manufacturer,
            "mpn": self.part_number,
            "key": self.key,
            "bomId": self.bom_id,
        }


@dataclass
class LaborEntry:
    id: int = 0
    service_group_name: str = ""
    service_group_id: int = 0
    name: str = ""
    unit_price: float = 0.0
    quantity: float = 0
    markup_percent: float = 0.0
    discount: Optional[bool] = None
    key: Any = None

    @property
    def identity(self) -> tuple:
        """Dedup key inside a service group: the same role at the same price."""
        return (self.id, self.unit_price)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "LaborEntry":
        return cls(
            id=to_int(d.get("id")),
            service_group_name=d.get("sgName", d.get("serviceGroupName")) or "",
            service_group_id=to_int(d.get("sgId", d.get("serviceGroupId"))),
            name=d.get("name") or "",
            unit_price=max(0.0, to_float(d.get("price", d.get("unitPrice")))),
            quantity=max(0, to_number(d.get("quantity"))),
            markup_percent=to_float(d.get("markUp", d.get("markupPercent"))),
            discount=parse_discount(d.get("discount")),
            key=_key(d.get("key")),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sgName": self.service_group_name,
            "sgId": self.service_group_id,
            "name": self.name,
            "price": self.unit_price,
            "quantity": self.quantity,
            "markUp": self.markup_percent,
            "discount": None if self.discount is None else discount_label(self.discount),
            "key": self.key,
        }


@dataclass
class Expense:
    quantity: float = 0
    unit_price: float = 0.0
    markup_percent: float = 0.0
    discount: Optional[bool] = None
    account_id: int = 0
    account_name: str = ""
    key: Any = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Expense":
        return cls(
            quantity=max(0, to_number(d.get("quantity"))),
            unit_price=max(0.0, to_float(d.get("price", d.get("unitPrice")))),
            markup_percent=to_float(d.get("markUp", d.get("markupPercent"))),
            discount=parse_discount(d.get("discount")),
            account_id=to_int(d.get("accountId")),
            account_name=d.get("name", d.get("account")) or "",
            key=_key(d.get("key")),
        )

    def to_dict(self) -> dict:
        return {
            "quantity": self.quantity,
            "price": self.unit_price,
            "markUp": self.markup_percent,
            "discount": None if self.discount is None else discount_label(self.discount),
            "accountId": self.account_id,
            "name": self.account_name,
            "key": self.key,
        }


@dataclass
class Bom:
    id: int = 0
    name: str = ""
    items: List[Item] = field(default_factory=list)
    labor: List[LaborEntry] = field(default_factory=list)
    expenses: List[Expense] = field(default_factory=list)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Bom":
        return cls(
            id=to_int(d.get("id")),
            name=d.get("name") or "",
            items=[Item.from_dict(i) for i in d.get("items") or []],
            labor=[LaborEntry.from_dict(l) for l in d.get("labor") or []],
            expenses=[Expense.from_dict(e) for e in d.get("expenses") or []],
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "items": [i.to_dict() for i in self.items],
            "labor": [l.to_dict() for l in self.labor],
            "expenses": [e.to_dict() for e in self.expenses],
        }


@dataclass
class QuoteLists:
    """Pick lists the provider ships with a quote."""
    units: List[Dict[str, Any]] = field(default_factory=list)
    expense_accounts: List[str] = field(default_factory=list)
    default_labor: List[LaborEntry] = field(default_factory=list)

    def unit_names_for(self, units_type: Any) -> Optional[str]:
        for unit in self.units:
            if unit.get("type") == units_type:
                return unit.get("names")
        return None

    def item_unit_names(self) -> str:
        return ",".join(
            str(u.get("names")) for u in self.units
            if u.get("type") != LABOR_UNITS_TYPE and u.get("names")
        )

    def expense_account_names(self) -> str:
        return ",".join(str(a) for a in self.expense_accounts)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "QuoteLists":
        return cls(
            units=list(d.get("units") or []),
            expense_accounts=list(d.get("expAccounts") or []),
            default_labor=[LaborEntry.from_dict(l) for l in d.get("defaultLabor") or []],
        )


@dataclass
class QuoteSummary:
    id: int = 0
    default_markup: float = 0.0
    items: List[Item] = field(default_factory=list)
    boms: List[Bom] = field(default_factory=list)
    lists: QuoteLists = field(default_factory=QuoteLists)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "QuoteSummary":
        return cls(
            id=to_int(d.get("id")),
            default_markup=to_float(d.get("defaultMU", d.get("defaultMarkup"))),
            items=[Item.from_dict(i) for i in d.get("items") or []],
            boms=[Bom.from_dict(b) for b in d.get("boms") or []],
            lists=QuoteLists.from_dict(d),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "defaultMU": self.default_markup,
            "items": [i.to_dict() for i in self.items],
            "boms": [b.to_dict() for b in self.boms],
        }
