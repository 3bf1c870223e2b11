"""Product catalog and presentation registry operations."""

from __future__ import annotations

import logging
from typing import Iterable

from triciclo.data import PROTECTED_SIZES, generate_id, utc_now_iso
from triciclo.errors import ProtectedPresentationError, ValidationError
from triciclo.models import AppData, Presentation, Product, ProductPresentation

logger = logging.getLogger(__name__)


def normalize_name(name: str) -> str:
    return (name or "").strip().lower()


def resolve_unit_price(price_per_liter: float, presentation: ProductPresentation) -> float:
    """Fixed override price if set, otherwise price per liter times volume."""
    if presentation.price is not None:
        return presentation.price
    return (price_per_liter or 0.0) * presentation.liters


def find_duplicate_name(products: Iterable[Product], name: str, exclude_id: str | None = None) -> Product | None:
    normalized = normalize_name(name)
    for product in products:
        if product.id != exclude_id and normalize_name(product.name) == normalized:
            return product
    return None


def save_product(
    data: AppData,
    *,
    name: str,
    price_per_liter: float,
    presentations: list[ProductPresentation],
    color: str | None = None,
    product_id: str | None = None,
    now: str | None = None,
) -> Product:
    """Create a product, or update ``product_id`` in place."""
    clean_name = (name or "").strip()
    if not clean_name:
        raise ValidationError("Product name cannot be empty.")
    if find_duplicate_name(data.products, clean_name, exclude_id=product_id) is not None:
        raise ValidationError("A product with that name already exists. Use a different name.")
    if not presentations:
        raise ValidationError("Select at least one presentation.")
    if price_per_liter < 0:
        raise ValidationError("Price per liter cannot be negative.")

    stamp = now or utc_now_iso()
    copied = [ProductPresentation(id=p.id, name=p.name, liters=p.liters, price=p.price) for p in presentations]

    if product_id:
        product = data.product(product_id)
        if product is None:
            raise ValidationError("Product not found.")
        product.name = clean_name
        product.price_per_liter = price_per_liter
        product.color = color
        product.presentations = copied
        product.updated_at = stamp
        logger.info("product_updated id=%s name=%r", product.id, product.name)
        return product

    product = Product(
        id=generate_id(),
        name=clean_name,
        price_per_liter=price_per_liter,
        color=color,
        presentations=copied,
        created_at=stamp,
        updated_at=stamp,
    )
    data.products.append(product)
    logger.info("product_created id=%s name=%r", product.id, product.name)
    return product


def delete_product(data: AppData, product_id: str) -> bool:
    before = len(data.products)
    data.products = [product for product in data.products if product.id != product_id]
    return len(data.products) != before


def next_presentation_id(presentations: Iterable[Presentation]) -> int:
    ids = [pres.id for pres in presentations]
    return max(ids) + 1 if ids else 1


def add_presentation(data: AppData, name: str, liters: float, now: str | None = None) -> Presentation:
    clean_name = (name or "").strip()
    if not clean_name:
        raise ValidationError("Presentation name cannot be empty.")
    if liters is None or liters <= 0:
        raise ValidationError("Liters must be greater than zero.")
    pres = Presentation(
        id=next_presentation_id(data.presentations),
        name=clean_name,
        liters=liters,
        created_at=now or utc_now_iso(),
    )
    data.presentations.append(pres)
    logger.info("presentation_added id=%s name=%r liters=%s", pres.id, pres.name, pres.liters)
    return pres


def edit_presentation(data: AppData, presentation_id: int, name: str, liters: float, now: str | None = None) -> bool:
    """Rename/resize a presentation and cascade to products; return True if the volume changed."""
    pres = data.presentation(presentation_id)
    if pres is None:
        raise ValidationError("Presentation not found.")
    clean_name = (name or "").strip()
    if not clean_name:
        raise ValidationError("Presentation name cannot be empty.")
    if liters is None or liters <= 0:
        raise ValidationError("Liters must be greater than zero.")

    stamp = now or utc_now_iso()
    liters_changed = pres.liters != liters
    pres.name = clean_name
    pres.liters = liters
    pres.updated_at = stamp

    for product in data.products:
        touched = False
        for product_pres in product.presentations:
            if product_pres.id == presentation_id:
                product_pres.name = clean_name
                product_pres.liters = liters
                touched = True
        if touched:
            product.updated_at = stamp
    logger.info("presentation_edited id=%s liters_changed=%s", presentation_id, liters_changed)
    return liters_changed


def delete_presentation(data: AppData, presentation_id: int, now: str | None = None) -> None:
    pres = data.presentation(presentation_id)
    if pres is None:
        raise ValidationError("Presentation not found.")
    if pres.is_protected:
        raise ProtectedPresentationError(f"The base presentation {pres.name!r} cannot be deleted.")

    stamp = now or utc_now_iso()
    data.presentations = [p for p in data.presentations if p.id != presentation_id]
    for product in data.products:
        kept = [p for p in product.presentations if p.id != presentation_id]
        if len(kept) != len(product.presentations):
            product.presentations = kept
            product.updated_at = stamp
    logger.info("presentation_deleted id=%s", presentation_id)


def ensure_protected_presentations(data: AppData, now: str | None = None) -> list[Presentation]:
    """Re-seed missing base sizes and flag the canonical ones; return the ones added."""
    added: list[Presentation] = []
    for size in PROTECTED_SIZES:
        exists = any(p.name == size.name or p.liters == size.liters for p in data.presentations)
        if exists:
            continue
        pres = Presentation(
            id=next_presentation_id(data.presentations),
            name=size.name,
            liters=size.liters,
            is_protected=True,
            created_at=now or utc_now_iso(),
        )
        data.presentations.append(pres)
        added.append(pres)

    for pres in data.presentations:
        if any(pres.name == size.name and pres.liters == size.liters for size in PROTECTED_SIZES):
            pres.is_protected = True
    if added:
        logger.info("protected_presentations_reseeded names=%s", [p.name for p in added])
    return added


def presentation_choices(data: AppData, selected_ids: Iterable[int], prices: dict[int, float | None]) -> list[ProductPresentation]:
    """Build a product's presentation list from registry ids, in registry order."""
    wanted = set(selected_ids)
    return [
        ProductPresentation(id=pres.id, name=pres.name, liters=pres.liters, price=prices.get(pres.id))
        for pres in data.presentations
        if pres.id in wanted
    ]
