"""ThemeProfile and ThemeRegistry: colour palettes for the HTML renderer.

Every profile is checked against the WCAG 2.x contrast formula when it is
constructed: body text on the background must reach at least 4.5:1, so an
unreadable palette can never be registered.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from pretty_inspect.formatter.config import register_theme_name
from pretty_inspect.request import Channel

__all__ = [
    "DARK_PALETTE",
    "LIGHT_PALETTE",
    "MIN_CONTRAST_RATIO",
    "PALETTE_ROLES",
    "ThemeProfile",
    "ThemeRegistry",
    "contrast_ratio",
    "relative_luminance",
]

MIN_CONTRAST_RATIO = 4.5

PALETTE_ROLES: tuple[str, ...] = (
    "background",
    "text",
    "border",
    "panel",
    "accent",
    "muted",
    "key",
    "array",
    "object",
    "string",
    "number",
    "bool",
    "null",
    "unknown",
    "notice",
    "circular",
    "exception",
    "diff_added",
    "diff_removed",
    "diff_modified",
)

LIGHT_PALETTE: Mapping[str, str] = MappingProxyType(
    {
        "background": "#ffffff",
        "text": "#1f2933",
        "border": "#d1d5db",
        "panel": "#f9fafb",
        "accent": "#2563eb",
        "muted": "#6b7280",
        "key": "#059669",
        "array": "#2563eb",
        "object": "#dc2626",
        "string": "#059669",
        "number": "#7c3aed",
        "bool": "#0891b2",
        "null": "#6b7280",
        "unknown": "#f59e0b",
        "notice": "#9ca3af",
        "circular": "#9ca3af",
        "exception": "#dc2626",
        "diff_added": "#22863a",
        "diff_removed": "#cb2431",
        "diff_modified": "#735c0f",
    }
)

DARK_PALETTE: Mapping[str, str] = MappingProxyType(
    {
        "background": "#1f2933",
        "text": "#f9fafb",
        "border": "#374151",
        "panel": "#111827",
        "accent": "#60a5fa",
        "muted": "#9ca3af",
        "key": "#34d399",
        "array": "#60a5fa",
        "object": "#f87171",
        "string": "#34d399",
        "number": "#a78bfa",
        "bool": "#22d3ee",
        "null": "#9ca3af",
        "unknown": "#fbbf24",
        "notice": "#9ca3af",
        "circular": "#9ca3af",
        "exception": "#f87171",
        "diff_added": "#85e89d",
        "diff_removed": "#f97583",
        "diff_modified": "#ffdf5d",
    }
)


def _parse_hex(color: str) -> tuple[int, int, int]:
    digits = color.strip().lstrip("#")
    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)
    if len(digits) != 6:
        msg = f"expected a #rgb or #rrggbb colour, got {color!r}"
        raise ValueError(msg)
    try:
        return int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16)
    except ValueError:
        msg = f"expected a #rgb or #rrggbb colour, got {color!r}"
        raise ValueError(msg) from None


def _linear(channel: int) -> float:
    value = channel / 255
    if value <= 0.04045:
        return value / 12.92
    return ((value + 0.055) / 1.055) ** 2.4


def relative_luminance(color: str) -> float:
    """WCAG relative luminance of a hex colour, in [0, 1]."""
    red, green, blue = _parse_hex(color)
    return 0.2126 * _linear(red) + 0.7152 * _linear(green) + 0.0722 * _linear(blue)


def contrast_ratio(foreground: str, background: str) -> float:
    """WCAG contrast ratio between two hex colours, in [1, 21]."""
    first = relative_luminance(foreground)
    second = relative_luminance(background)
    lighter, darker = max(first, second), min(first, second)
    return (lighter + 0.05) / (darker + 0.05)


@dataclass(frozen=True, slots=True)
class ThemeProfile:
    """Named, validated colour palette.

    Attributes:
        name:    Theme name used by ``data-theme`` (``light``, ``dark``, ...).
        palette: Colour per role; every entry of PALETTE_ROLES is required.
        assets:  Extra stylesheet URLs a host page may load with the theme.
        contrast_ratio: Computed text/background contrast (not an argument).
    """

    name: str
    palette: Mapping[str, str]
    assets: tuple[str, ...] = ()
    contrast_ratio: float = field(init=False)

    def __post_init__(self) -> None:
        if not self.name:
            msg = "theme name must not be empty"
            raise ValueError(msg)
        missing = [role for role in PALETTE_ROLES if role not in self.palette]
        if missing:
            msg = f"theme {self.name!r} is missing palette roles: {', '.join(missing)}"
            raise ValueError(msg)
        ratio = contrast_ratio(self.palette["text"], self.palette["background"])
        if ratio < MIN_CONTRAST_RATIO:
            msg = (
                f"theme {self.name!r} text/background contrast {ratio:.2f} is below "
                f"the required {MIN_CONTRAST_RATIO}"
            )
            raise ValueError(msg)
        object.__setattr__(self, "palette", MappingProxyType(dict(self.palette)))
        object.__setattr__(self, "assets", tuple(self.assets))
        object.__setattr__(self, "contrast_ratio", ratio)

    def color(self, role: str) -> str:
        return self.palette[role]

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "palette": dict(self.palette),
            "assets": list(self.assets),
            "contrast_ratio": round(self.contrast_ratio, 2),
        }


class ThemeRegistry:
    """Name-indexed collection of theme profiles with per-channel defaults."""

    def __init__(
        self,
        profiles: Iterable[ThemeProfile] = (),
        default_cli: str = "dark",
        default_web: str = "light",
    ) -> None:
        self._profiles: dict[str, ThemeProfile] = {}
        for profile in profiles:
            self.register(profile)
        self._defaults = {Channel.CLI: default_cli, Channel.WEB: default_web}

    @classmethod
    def with_defaults(cls) -> ThemeRegistry:
        return cls(
            [ThemeProfile("light", LIGHT_PALETTE), ThemeProfile("dark", DARK_PALETTE)],
        )

    def register(self, profile: ThemeProfile) -> None:
        """Add or replace ``profile``; its name becomes a valid configuration theme."""
        self._profiles[profile.name] = profile
        register_theme_name(profile.name)

    def has(self, name: str) -> bool:
        return name in self._profiles

    def get(self, name: str) -> ThemeProfile:
        try:
            return self._profiles[name]
        except KeyError:
            msg = f"unknown theme {name!r}; registered: {', '.join(self._profiles) or 'none'}"
            raise KeyError(msg) from None

    def default_for_channel(self, channel: Channel | str) -> ThemeProfile:
        return self.get(self._defaults[Channel(channel)])

    def all(self) -> list[ThemeProfile]:
        return list(self._profiles.values())
