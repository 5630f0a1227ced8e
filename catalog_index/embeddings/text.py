"""Text sent to the embedding model for one catalog item."""
from __future__ import annotations

DESCRIPTION_MAX_CHARS = 1000


def build_product_embedding_text(
    name: str | None,
    description: str | None,
    brand: str | None,
    category_name: str | None,
) -> str:
    """'Name. Description Brand: X. Category: Y.' with blank parts left out."""
    parts: list[str] = []
    if name and name.strip():
        parts.append(f"{name}. ")
    if description and description.strip():
        if len(description) > DESCRIPTION_MAX_CHARS:
            description = description[:DESCRIPTION_MAX_CHARS] + "..."
        parts.append(f"{description} ")
    if brand and brand.strip():
        parts.append(f"Brand: {brand}. ")
    if category_name and category_name.strip():
        parts.append(f"Category: {category_name}.")
    return "".join(parts).strip()
