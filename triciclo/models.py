"""Domain models for the point of sale and their JSON document shape."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from triciclo.constant import DATA_VERSION


def coerce_float(value: Any, default: float = 0.0) -> float:
    """Parse a number leniently, returning ``default`` for anything unusable."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip().replace("$", "").replace(" ", "")
        if not text:
            return default
        if "." in text:
            # "1,234.50": commas group thousands.
            text = text.replace(",", "")
        elif text.count(",") == 1:
            # "1,5": decimal comma.
            text = text.replace(",", ".")
        try:
            number = float(text)
        except ValueError:
            return default
    if number != number or number in (float("inf"), float("-inf")):
        return default
    return number


def coerce_optional_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    number = coerce_float(value, default=float("nan"))
    if number != number:
        return None
    return number


def coerce_int(value: Any, default: int = 0) -> int:
    return int(coerce_float(value, default=float(default)))


def coerce_text(value: Any, default: str = "") -> str:
    if value is None:
        return default
    return str(value)


@dataclass
class Presentation:
    """A globally defined package size."""

    id: int
    name: str
    liters: float
    is_protected: bool = False
    created_at: str = ""
    updated_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "liters": self.liters,
            "createdAt": self.created_at,
            "isProtected": self.is_protected,
        }
        if self.updated_at is not None:
            payload["updatedAt"] = self.updated_at
        return payload

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Presentation:
        return cls(
            id=coerce_int(raw.get("id")),
            name=coerce_text(raw.get("name")),
            liters=coerce_float(raw.get("liters")),
            is_protected=raw.get("isProtected") is True,
            created_at=coerce_text(raw.get("createdAt")),
            updated_at=raw.get("updatedAt"),
        )


@dataclass
class ProductPresentation:
    """A presentation as offered by one product, with an optional fixed price."""

    id: int
    name: str
    liters: float
    price: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "liters": self.liters, "price": self.price}

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> ProductPresentation:
        return cls(
            id=coerce_int(raw.get("id")),
            name=coerce_text(raw.get("name")),
            liters=coerce_float(raw.get("liters")),
            price=coerce_optional_float(raw.get("price")),
        )


def _product_presentations(raw: Any) -> list[ProductPresentation]:
    if not isinstance(raw, list):
        return []
    return [ProductPresentation.from_dict(item) for item in raw if isinstance(item, dict)]


@dataclass
class Product:
    """A catalog product priced per liter."""

    id: str
    name: str
    price_per_liter: float = 0.0
    color: str | None = None
    presentations: list[ProductPresentation] = field(default_factory=list)
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "pricePerLiter": self.price_per_liter,
            "color": self.color,
            "presentations": [pres.to_dict() for pres in self.presentations],
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Product:
        price = coerce_float(raw.get("pricePerLiter"), default=coerce_float(raw.get("price")))
        return cls(
            id=coerce_text(raw.get("id")),
            name=coerce_text(raw.get("name")),
            price_per_liter=price,
            color=raw.get("color") or None,
            presentations=_product_presentations(raw.get("presentations")),
            created_at=coerce_text(raw.get("createdAt")),
            updated_at=coerce_text(raw.get("updatedAt")),
        )


@dataclass
class PresentationItem:
    """A running sale counter for one presentation during a session."""

    presentation_id: int
    price: float
    count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"presentationId": self.presentation_id, "count": self.count, "price": self.price}

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> PresentationItem:
        return cls(
            presentation_id=coerce_int(raw.get("presentationId")),
            price=coerce_float(raw.get("price")),
            count=max(0, coerce_int(raw.get("count"))),
        )


@dataclass
class SessionEntry:
    """A product selected for the day with its counters."""

    id: str
    name: str
    price_per_liter: float
    color: str | None
    presentations: list[ProductPresentation]
    presentation_items: list[PresentationItem]

    def item(self, presentation_id: int) -> PresentationItem | None:
        for item in self.presentation_items:
            if item.presentation_id == presentation_id:
                return item
        return None

    def presentation(self, presentation_id: int) -> ProductPresentation | None:
        for pres in self.presentations:
            if pres.id == presentation_id:
                return pres
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "pricePerLiter": self.price_per_liter,
            "color": self.color,
            "presentations": [pres.to_dict() for pres in self.presentations],
            "presentationItems": [item.to_dict() for item in self.presentation_items],
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> SessionEntry:
        items = raw.get("presentationItems")
        return cls(
            id=coerce_text(raw.get("id")),
            name=coerce_text(raw.get("name")),
            price_per_liter=coerce_float(raw.get("pricePerLiter")),
            color=raw.get("color") or None,
            presentations=_product_presentations(raw.get("presentations")),
            presentation_items=[
                PresentationItem.from_dict(item) for item in (items if isinstance(items, list) else []) if isinstance(item, dict)
            ],
        )


@dataclass(frozen=True)
class SaleLineItem:
    """One product/presentation line of a closed day."""

    product_id: str
    name: str
    presentation_name: str
    price: float
    count: int
    total: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "productId": self.product_id,
            "name": self.name,
            "presentationName": self.presentation_name,
            "price": self.price,
            "count": self.count,
            "total": self.total,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> SaleLineItem:
        price = coerce_float(raw.get("price"))
        count = coerce_int(raw.get("count"))
        return cls(
            product_id=coerce_text(raw.get("productId")),
            name=coerce_text(raw.get("name")),
            presentation_name=coerce_text(raw.get("presentationName")),
            price=price,
            count=count,
            total=coerce_float(raw.get("total"), default=price * count),
        )


@dataclass(frozen=True)
class SaleRecord:
    """An immutable summary of one closed sales day."""

    id: str
    date: str
    total_amount: float
    items: tuple[SaleLineItem, ...] = ()

    @property
    def day(self) -> str:
        return self.date.split("T")[0]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "date": self.date,
            "totalAmount": self.total_amount,
            "items": [item.to_dict() for item in self.items],
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> SaleRecord:
        items = raw.get("items")
        return cls(
            id=coerce_text(raw.get("id")),
            date=coerce_text(raw.get("date")),
            total_amount=coerce_float(raw.get("totalAmount")),
            items=tuple(
                SaleLineItem.from_dict(item) for item in (items if isinstance(items, list) else []) if isinstance(item, dict)
            ),
        )


@dataclass
class ExpenseCategory:
    id: str
    name: str
    created_at: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "createdAt": self.created_at}

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> ExpenseCategory:
        return cls(
            id=coerce_text(raw.get("id")),
            name=coerce_text(raw.get("name")),
            created_at=coerce_text(raw.get("createdAt")),
        )


@dataclass
class Expense:
    """A single recorded expense."""

    id: str
    date: str
    amount: float
    category_id: str | None = None
    description: str = ""
    created_at: str = ""

    @property
    def day(self) -> str:
        return self.date.split("T")[0]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "date": self.date,
            "categoryId": self.category_id,
            "amount": self.amount,
            "description": self.description,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Expense:
        category_id = raw.get("categoryId")
        return cls(
            id=coerce_text(raw.get("id")),
            date=coerce_text(raw.get("date")),
            amount=coerce_float(raw.get("amount")),
            category_id=str(category_id) if category_id not in (None, "") else None,
            description=coerce_text(raw.get("description")),
            created_at=coerce_text(raw.get("createdAt")),
        )


def _records(raw: Any, factory: Any) -> list[Any]:
    if not isinstance(raw, list):
        return []
    return [factory(item) for item in raw if isinstance(item, dict)]


@dataclass
class AppData:
    """The whole persisted application state."""

    data_version: int = DATA_VERSION
    products: list[Product] = field(default_factory=list)
    sales_history: list[SaleRecord] = field(default_factory=list)
    expenses: list[Expense] = field(default_factory=list)
    expense_categories: list[ExpenseCategory] = field(default_factory=list)
    pos_active_products: list[SessionEntry] = field(default_factory=list)
    presentations: list[Presentation] = field(default_factory=list)

    def product(self, product_id: str) -> Product | None:
        for product in self.products:
            if product.id == product_id:
                return product
        return None

    def presentation(self, presentation_id: int) -> Presentation | None:
        for pres in self.presentations:
            if pres.id == presentation_id:
                return pres
        return None

    def category(self, category_id: str | None) -> ExpenseCategory | None:
        if category_id is None:
            return None
        for category in self.expense_categories:
            if category.id == str(category_id):
                return category
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "dataVersion": self.data_version,
            "products": [product.to_dict() for product in self.products],
            "salesHistory": [record.to_dict() for record in self.sales_history],
            "expenses": [expense.to_dict() for expense in self.expenses],
            "expenseCategories": [category.to_dict() for category in self.expense_categories],
            "posActiveProducts": [entry.to_dict() for entry in self.pos_active_products],
            "presentations": [pres.to_dict() for pres in self.presentations],
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> AppData:
        return cls(
            data_version=coerce_int(raw.get("dataVersion"), default=DATA_VERSION) or DATA_VERSION,
            products=_records(raw.get("products"), Product.from_dict),
            sales_history=_records(raw.get("salesHistory"), SaleRecord.from_dict),
            expenses=_records(raw.get("expenses"), Expense.from_dict),
            expense_categories=_records(raw.get("expenseCategories"), ExpenseCategory.from_dict),
            pos_active_products=_records(raw.get("posActiveProducts"), SessionEntry.from_dict),
            presentations=_records(raw.get("presentations"), Presentation.from_dict),
        )
