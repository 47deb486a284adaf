"""Tests for ThemeProfile contrast validation and ThemeRegistry lookups."""

from __future__ import annotations

from dataclasses import FrozenInstanceError

import pytest

from pretty_inspect import Channel, ThemeProfile, ThemeRegistry
from pretty_inspect.renderers.theme import (
    DARK_PALETTE,
    LIGHT_PALETTE,
    MIN_CONTRAST_RATIO,
    PALETTE_ROLES,
    contrast_ratio,
    relative_luminance,
)


def _palette(**overrides: str) -> dict[str, str]:
    palette = dict(LIGHT_PALETTE)
    palette.update(overrides)
    return palette


class TestContrastMath:
    def test_luminance_bounds(self) -> None:
        assert relative_luminance("#000000") == 0.0
        assert relative_luminance("#ffffff") == pytest.approx(1.0)

    def test_black_on_white_is_maximal(self) -> None:
        assert contrast_ratio("#000", "#fff") == pytest.approx(21.0)

    def test_symmetric(self) -> None:
        assert contrast_ratio("#1f2933", "#ffffff") == contrast_ratio("#ffffff", "#1f2933")

    def test_same_colour_is_one(self) -> None:
        assert contrast_ratio("#777777", "#777777") == pytest.approx(1.0)

    def test_known_value(self) -> None:
        # #767676 on white is the classic 4.54:1 threshold grey.
        assert contrast_ratio("#767676", "#ffffff") == pytest.approx(4.54, abs=0.01)

    @pytest.mark.parametrize("colour", ["red", "#12", "#gggggg", "#12345"])
    def test_rejects_non_hex(self, colour: str) -> None:
        with pytest.raises(ValueError, match="colour"):
            relative_luminance(colour)


class TestThemeProfile:
    def test_builtin_palettes_pass(self) -> None:
        for palette in (LIGHT_PALETTE, DARK_PALETTE):
            profile = ThemeProfile("x", palette)
            assert profile.contrast_ratio >= MIN_CONTRAST_RATIO

    def test_low_contrast_is_rejected(self) -> None:
        with pytest.raises(ValueError, match="contrast"):
            ThemeProfile("washed", _palette(text="#cccccc", background="#ffffff"))

    def test_missing_roles_are_listed(self) -> None:
        palette = _palette()
        del palette["diff_added"]
        with pytest.raises(ValueError, match="diff_added"):
            ThemeProfile("partial", palette)

    def test_empty_name(self) -> None:
        with pytest.raises(ValueError, match="name"):
            ThemeProfile("", LIGHT_PALETTE)

    def test_palette_is_copied_and_read_only(self) -> None:
        source = _palette()
        profile = ThemeProfile("copy", source)
        source["text"] = "#ffffff"
        assert profile.color("text") == LIGHT_PALETTE["text"]
        with pytest.raises(TypeError):
            profile.palette["text"] = "#000000"  # type: ignore[index]

    def test_is_frozen(self) -> None:
        profile = ThemeProfile("x", LIGHT_PALETTE)
        with pytest.raises(FrozenInstanceError):
            profile.name = "y"  # type: ignore[misc]

    def test_to_dict(self) -> None:
        data = ThemeProfile("x", LIGHT_PALETTE, assets=("theme.css",)).to_dict()
        assert data["name"] == "x"
        assert data["assets"] == ["theme.css"]
        assert set(data["palette"]) == set(PALETTE_ROLES)
        assert isinstance(data["contrast_ratio"], float)


class TestThemeRegistry:
    def test_defaults(self) -> None:
        registry = ThemeRegistry.with_defaults()
        assert [profile.name for profile in registry.all()] == ["light", "dark"]
        assert registry.default_for_channel(Channel.CLI).name == "dark"
        assert registry.default_for_channel("web").name == "light"

    def test_register_and_replace(self) -> None:
        registry = ThemeRegistry.with_defaults()
        contrast = ThemeProfile("contrast", _palette(text="#000000"))
        registry.register(contrast)
        assert registry.has("contrast")
        assert registry.get("contrast") is contrast
        replacement = ThemeProfile("contrast", _palette())
        registry.register(replacement)
        assert registry.get("contrast") is replacement

    def test_unknown_theme_raises_key_error(self) -> None:
        with pytest.raises(KeyError, match="solarized"):
            ThemeRegistry.with_defaults().get("solarized")

    def test_custom_channel_defaults(self) -> None:
        registry = ThemeRegistry([ThemeProfile("only", LIGHT_PALETTE)], default_cli="only", default_web="only")
        assert registry.default_for_channel("cli").name == "only"
