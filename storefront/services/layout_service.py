"""
Row packing for banners and category tiles.

Items carry a display width of 25, 50, 75 or 100 percent and are laid out
greedily, in order, into rows whose widths never add up to more than 100.
"""
from typing import Any, Callable, Dict, List, Optional

ALLOWED_WIDTHS = (25, 50, 75, 100)
DEFAULT_WIDTH = 50
FULL_WIDTH = 100
DEFAULT_ALIGNMENT = 'center'
ALIGNMENTS = ('left', 'center', 'right')


def normalize_width(value: Any) -> int:
    """Coerce a stored width ("25", 75, None...) to an allowed width."""
    try:
        width = int(str(value).strip())
    except (TypeError, ValueError):
        return DEFAULT_WIDTH
    return width if width in ALLOWED_WIDTHS else DEFAULT_WIDTH


def normalize_alignment(value: Optional[str]) -> str:
    return value if value in ALIGNMENTS else DEFAULT_ALIGNMENT


def pack_rows(items: List[Any], width_of: Callable[[Any], Any]) -> List[List[Any]]:
    """
    Greedy row packing.

    A full width item closes the current row and gets a row of its own.
    Any other item joins the current row while the total stays within 100
    (a row that reaches exactly 100 is closed), otherwise it starts a new row.
    """
    rows: List[List[Any]] = []
    current: List[Any] = []
    current_width = 0

    for item in items:
        width = normalize_width(width_of(item))
        if width == FULL_WIDTH:
            if current:
                rows.append(current)
                current, current_width = [], 0
            rows.append([item])
        elif current_width + width <= FULL_WIDTH:
            current.append(item)
            current_width += width
            if current_width == FULL_WIDTH:
                rows.append(current)
                current, current_width = [], 0
        else:
            if current:
                rows.append(current)
            current, current_width = [item], width

    if current:
        rows.append(current)
    return rows


def describe_row(row: List[Any], width_of: Callable[[Any], Any],
                 alignment_of: Callable[[Any], Optional[str]]) -> Dict[str, Any]:
    """
    Render hints for one packed row.

    `alignment` is None when the row spans the full width. `columns` are the
    relative column fractions (width / 25) of the row's items.
    """
    widths = [normalize_width(width_of(item)) for item in row]
    total = sum(widths)
    is_partial = total < FULL_WIDTH

    if len(row) == 1:
        alignment = None if widths[0] == FULL_WIDTH else normalize_alignment(alignment_of(row[0]))
    elif is_partial:
        alignment = normalize_alignment(alignment_of(row[0]))
    else:
        alignment = None

    return {
        'total_width': total,
        'is_partial': is_partial,
        'alignment': alignment,
        'columns': [w // 25 for w in widths],
    }


def layout_rows(items: List[Any], width_of: Callable[[Any], Any],
                alignment_of: Callable[[Any], Optional[str]],
                serialize: Callable[[Any], Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Pack items and return serializable rows with their render hints."""
    result = []
    for row in pack_rows(items, width_of):
        entry = describe_row(row, width_of, alignment_of)
        entry['items'] = [serialize(item) for item in row]
        result.append(entry)
    return result
