from decimal import Decimal, InvalidOperation
from typing import Iterable, List, Literal, Optional, Sequence, Tuple, Union

from db.errors import ValidationError
from db.models import CartLine, to_money


def generate_markdown_table(
    headers: Optional[Sequence[str]],
    rows: Sequence[Sequence[object]],
    aligns: Optional[Sequence[Literal["l", "c", "r"]]] = None,
) -> str:
    """
    Generate a Markdown table.

    Args:
        headers: column headers, or None to use the first row as headers.
        rows: table body; cells are converted with str().
        aligns: 'l', 'c' or 'r' per column, default all left.

    Returns:
        str: Markdown formatted table, "" when there is nothing to show.
    """
    if not rows and not headers:
        return ""
    if not headers:
        headers, rows = rows[0], rows[1:]

    header_cells = [str(h) for h in headers]
    if aligns is None:
        aligns = ["l"] * len(header_cells)
    elif len(aligns) != len(header_cells):
        raise ValueError("Length of aligns must match number of headers.")

    align_map = {"l": ":---", "c": ":---:", "r": "---:"}
    lines = [
        "| " + " | ".join(header_cells) + " |",
        "| " + " | ".join(align_map[a] for a in aligns) + " |",
    ]
    for row in rows:
        cells = [str(c).replace("|", "\\|") for c in row]
        lines.append("| " + " | ".join(cells) + " |")
    return "\n".join(lines)


def format_money(amount: Decimal) -> str:
    return f"${amount:.2f}"


def merge_cart_lines(
    cart: Iterable[Union[CartLine, Tuple[str, int]]],
) -> List[CartLine]:
    """
    Normalize a cart into one CartLine per item name, first-seen order kept.
    Quantities of repeated names are summed. Blank names and quantities
    below 1 raise ValidationError.
    """
    merged: dict[str, int] = {}
    for entry in cart:
        if isinstance(entry, CartLine):
            name, qty = entry.item_name, entry.quantity
        else:
            name, qty = entry
        name = (name or "").strip()
        if not name:
            raise ValidationError("Item name cannot be empty.")
        if isinstance(qty, bool) or not isinstance(qty, int) or qty < 1:
            raise ValidationError(f"Quantity for {name} must be a whole number >= 1.")
        merged[name] = merged.get(name, 0) + qty
    return [CartLine(item_name=k, quantity=v) for k, v in merged.items()]


def parse_quantity(text: str) -> int:
    """Parse a quantity typed by the user."""
    try:
        qty = int((text or "").strip())
    except ValueError:
        raise ValidationError(f"Not a whole number: {text!r}") from None
    if qty < 1:
        raise ValidationError("Quantity must be at least 1.")
    return qty


def parse_price(text: str) -> Decimal:
    """Parse a non-negative price typed by the user."""
    try:
        price = to_money((text or "").strip().lstrip("$"))
    except InvalidOperation:
        raise ValidationError(f"Not a price: {text!r}") from None
    if not price.is_finite():
        raise ValidationError(f"Not a price: {text!r}")
    if price < 0:
        raise ValidationError("Price cannot be negative.")
    return price
