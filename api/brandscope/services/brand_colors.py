"""Stable brand-to-color assignment for one report."""
from typing import Iterable, Optional

BRAND_PALETTE = [
    "#3B82F6",  # primary, reserved for the focus brand
    "#EF4444",
    "#10B981",
    "#F59E0B",
    "#8B5CF6",
    "#EC4899",
    "#14B8A6",
    "#F97316",
    "#6366F1",
    "#84CC16",
]

# Series colors for charts that are not keyed by brand
CHART_COLORS = ["#8B5CF6", "#3B82F6", "#10B981", "#F59E0B", "#EF4444", "#EC4899", "#6366F1", "#14B8A6"]

PLATFORM_COLORS = {
    "instagram": "#E4405F",
    "tiktok": "#000000",
    "twitter": "#1DA1F2",
    "youtube": "#FF0000",
    "facebook": "#1877F2",
}


class BrandPalette:
    """Per-report color context.

    The focus brand always gets the primary color. Every other brand gets the
    next unused palette color the first time it is seen and keeps it until
    reset(). The competitor palette cycles when more brands than colors appear.
    """

    def __init__(self, focus_brand: Optional[str] = None, brands: Iterable[str] = ()):
        self.focus_brand = focus_brand
        self._assigned: dict[str, str] = {}
        for name in brands:
            self.color(name)

    @property
    def primary(self) -> str:
        return BRAND_PALETTE[0]

    def color(self, brand: str) -> str:
        if self.focus_brand is not None and brand == self.focus_brand:
            return self.primary
        if brand not in self._assigned:
            competitors = BRAND_PALETTE[1:]
            self._assigned[brand] = competitors[len(self._assigned) % len(competitors)]
        return self._assigned[brand]

    def light(self, brand: str) -> str:
        """Translucent variant (hex alpha 0x20) for fills."""
        return self.color(brand) + "20"

    def colors(self, brands: Iterable[str]) -> list[str]:
        return [self.color(b) for b in brands]

    def as_dict(self) -> dict[str, str]:
        out = {self.focus_brand: self.primary} if self.focus_brand else {}
        out.update(self._assigned)
        return out

    def reset(self, focus_brand: Optional[str] = None) -> None:
        self.focus_brand = focus_brand
        self._assigned.clear()


def platform_color(platform: str) -> str:
    return PLATFORM_COLORS.get(platform.lower(), "#6B7280")
