"""Closed set of facility resources an activity can be logged against.

Adding a member is a schema change (the column stores these values).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Tuple

from ..core.exceptions import ValidationError


class ActivityCategory(str, Enum):
    VR_HMD = "VR_HMD"
    DRONE = "DRONE"
    PRINTER_3D = "PRINTER_3D"
    PEPPER = "PEPPER"
    LEGO = "LEGO"
    MBOT2 = "MBOT2"
    LITTLE_BITS = "LITTLE_BITS"
    MESH = "MESH"
    TOIO = "TOIO"
    MINECRAFT = "MINECRAFT"
    UNITY = "UNITY"
    BLENDER = "BLENDER"
    DAVINCI_RESOLVE = "DAVINCI_RESOLVE"
    OTHER = "OTHER"

    @property
    def label(self) -> str:
        return CATEGORY_META[self].label

    @property
    def color_class(self) -> str:
        return CATEGORY_META[self].color_class


@dataclass(frozen=True)
class CategoryMeta:
    label: str
    color_class: str


CATEGORY_META: Mapping[ActivityCategory, CategoryMeta] = MappingProxyType(
    {
        ActivityCategory.VR_HMD: CategoryMeta("VR (HMD)", "bg-purple-500/15 text-purple-600 border-purple-400/40"),
        ActivityCategory.DRONE: CategoryMeta("Drone", "bg-sky-500/15 text-sky-600 border-sky-400/40"),
        ActivityCategory.PRINTER_3D: CategoryMeta("3D Printer", "bg-orange-500/15 text-orange-600 border-orange-400/40"),
        ActivityCategory.PEPPER: CategoryMeta("Pepper", "bg-rose-500/15 text-rose-600 border-rose-400/40"),
        ActivityCategory.LEGO: CategoryMeta("LEGO", "bg-yellow-500/20 text-yellow-700 border-yellow-400/40"),
        ActivityCategory.MBOT2: CategoryMeta("mBot2", "bg-cyan-500/15 text-cyan-600 border-cyan-400/40"),
        ActivityCategory.LITTLE_BITS: CategoryMeta("littleBits", "bg-pink-500/15 text-pink-600 border-pink-400/40"),
        ActivityCategory.MESH: CategoryMeta("MESH", "bg-emerald-500/15 text-emerald-600 border-emerald-400/40"),
        ActivityCategory.TOIO: CategoryMeta("toio", "bg-indigo-500/15 text-indigo-600 border-indigo-400/40"),
        ActivityCategory.MINECRAFT: CategoryMeta("Minecraft", "bg-green-600/15 text-green-700 border-green-500/40"),
        ActivityCategory.UNITY: CategoryMeta("Unity", "bg-gray-500/15 text-gray-600 border-gray-400/40"),
        ActivityCategory.BLENDER: CategoryMeta("Blender", "bg-amber-500/15 text-amber-600 border-amber-400/40"),
        ActivityCategory.DAVINCI_RESOLVE: CategoryMeta("DaVinci Resolve", "bg-blue-600/15 text-blue-700 border-blue-500/40"),
        ActivityCategory.OTHER: CategoryMeta("Other", "bg-muted text-muted-foreground border-border"),
    }
)

_ORDER = {cat: i for i, cat in enumerate(ActivityCategory)}


def category_order(cat: ActivityCategory) -> int:
    return _ORDER[cat]


def parse_categories(
    values: Optional[Iterable],
    *,
    field: str = "categories",
    allow_empty: bool = False,
) -> Tuple[ActivityCategory, ...]:
    """Validate raw category values against the enumeration.

    Duplicates collapse; the result follows enumeration order.
    """

    if values is None:
        values = ()
    elif isinstance(values, (str, ActivityCategory)):
        values = (values,)

    parsed = set()
    for raw in values:
        try:
            parsed.add(raw if isinstance(raw, ActivityCategory) else ActivityCategory(str(raw).strip().upper()))
        except ValueError as exc:
            raise ValidationError(f"Unknown category: {raw!r}", field=field) from exc

    if not parsed and not allow_empty:
        raise ValidationError("At least one category is required", field=field)
    return tuple(sorted(parsed, key=category_order))
