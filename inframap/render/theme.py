"""Colour themes for diagram elements."""

from __future__ import annotations

from dataclasses import dataclass, field

from inframap.model import ServerType


@dataclass(frozen=True)
class ThemeColor:
    """Fill, stroke and font colours for one element kind."""

    fill: str
    stroke: str
    font: str


_FALLBACK = ThemeColor(fill="#F9FAFB", stroke="#D1D5DB", font="#111827")


@dataclass(frozen=True)
class Theme:
    """A named set of element colours."""

    name: str
    colors: dict[str, ThemeColor] = field(default_factory=dict)

    def color_for_server_type(self, server_type: ServerType | str) -> ThemeColor:
        """Colour for a server type, falling back to the lab colour."""
        key = server_type.value if isinstance(server_type, ServerType) else server_type
        return self.colors.get(key, self.colors["lab"])

    def color_for_element(self, name: str) -> ThemeColor:
        """Colour for a named element, with a neutral fallback."""
        return self.colors.get(name, _FALLBACK)


def _theme(name: str, **colors: tuple[str, str, str]) -> Theme:
    return Theme(name=name, colors={key: ThemeColor(*value) for key, value in colors.items()})


THEMES: dict[str, Theme] = {
    "default": _theme(
        "default",
        production=("#FEE2E2", "#DC2626", "#991B1B"),
        lab=("#DCFCE7", "#16A34A", "#166534"),
        local=("#FEF9C3", "#CA8A04", "#854D0E"),
        cluster=("#E0F2FE", "#0284C7", "#075985"),
        hypervisor=("#FFF7ED", "#EA580C", "#9A3412"),
        devices=("#F3F4F6", "#6B7280", "#374151"),
        cloud=("#DBEAFE", "#2563EB", "#1E40AF"),
        database=("#EDE9FE", "#7C3AED", "#5B21B6"),
        system=("#E0E7FF", "#4F46E5", "#3730A3"),
    ),
    "dark": _theme(
        "dark",
        production=("#450A0A", "#EF4444", "#FCA5A5"),
        lab=("#052E16", "#22C55E", "#86EFAC"),
        local=("#422006", "#EAB308", "#FDE047"),
        cluster=("#082F49", "#0EA5E9", "#7DD3FC"),
        hypervisor=("#431407", "#F97316", "#FDBA74"),
        devices=("#1F2937", "#9CA3AF", "#D1D5DB"),
        cloud=("#1E3A5F", "#3B82F6", "#93C5FD"),
        database=("#2E1065", "#A78BFA", "#C4B5FD"),
        system=("#1E1B4B", "#818CF8", "#A5B4FC"),
    ),
    "monochrome": _theme(
        "monochrome",
        production=("#E5E7EB", "#374151", "#111827"),
        lab=("#F3F4F6", "#6B7280", "#374151"),
        local=("#F9FAFB", "#9CA3AF", "#4B5563"),
        cluster=("#E5E7EB", "#4B5563", "#1F2937"),
        hypervisor=("#D1D5DB", "#374151", "#111827"),
        devices=("#F3F4F6", "#9CA3AF", "#6B7280"),
        cloud=("#E5E7EB", "#6B7280", "#374151"),
        database=("#D1D5DB", "#4B5563", "#1F2937"),
        system=("#E5E7EB", "#6B7280", "#374151"),
    ),
    "ocean": _theme(
        "ocean",
        production=("#FEE2E2", "#DC2626", "#991B1B"),
        lab=("#CFFAFE", "#0891B2", "#155E75"),
        local=("#E0F2FE", "#0284C7", "#075985"),
        cluster=("#DBEAFE", "#2563EB", "#1E40AF"),
        hypervisor=("#C7D2FE", "#4F46E5", "#3730A3"),
        devices=("#F0F9FF", "#38BDF8", "#0369A1"),
        cloud=("#E0F2FE", "#0EA5E9", "#0C4A6E"),
        database=("#C7D2FE", "#6366F1", "#3730A3"),
        system=("#DBEAFE", "#3B82F6", "#1E40AF"),
    ),
}


def theme_names() -> list[str]:
    """Names of all available themes."""
    return list(THEMES)


def get_theme(name: str) -> Theme:
    """The named theme, or the default theme if the name is unknown."""
    return THEMES.get(name, THEMES["default"])