"""
Predefined color schemes for the public site.

Each scheme holds five scales (primary, secondary, accent, neutral with the
50..950 steps, plus system colors). The admin picks one by key and the
client applies it as CSS custom properties.
"""
from typing import Dict, List

DEFAULT_SCHEME = "floralPink"
SETTING_KEY = "colorScheme"

_NEUTRAL = {
    "50": "#fafafa", "100": "#f5f5f5", "200": "#e5e5e5", "300": "#d4d4d4",
    "400": "#a3a3a3", "500": "#737373", "600": "#525252", "700": "#404040",
    "800": "#262626", "900": "#171717", "950": "#0a0a0a",
}

_SYSTEM = {
    "success": "#22c55e",
    "warning": "#f59e0b",
    "error": "#ef4444",
    "info": "#3b82f6",
}

_PINK = {
    "50": "#fdf2f8", "100": "#fce7f3", "200": "#fbcfe8", "300": "#f9a8d4",
    "400": "#f472b6", "500": "#ec4899", "600": "#db2777", "700": "#be185d",
    "800": "#9d174d", "900": "#831843", "950": "#500724",
}

_PURPLE = {
    "50": "#faf5ff", "100": "#f3e8ff", "200": "#e9d5ff", "300": "#d8b4fe",
    "400": "#c084fc", "500": "#a855f7", "600": "#9333ea", "700": "#7c3aed",
    "800": "#6b21a8", "900": "#581c87", "950": "#3b0764",
}

_GREEN = {
    "50": "#f0fdf4", "100": "#dcfce7", "200": "#bbf7d0", "300": "#86efac",
    "400": "#4ade80", "500": "#22c55e", "600": "#16a34a", "700": "#15803d",
    "800": "#166534", "900": "#14532d", "950": "#052e16",
}

COLOR_SCHEMES: Dict[str, dict] = {
    "floralPink": {
        "name": "Нежный флористический",
        "description": "Мягкие розовые и фиолетовые оттенки",
        "primary": _PINK,
        "secondary": _PURPLE,
        "accent": _GREEN,
        "neutral": _NEUTRAL,
        "system": _SYSTEM,
    },
    "botanicalGreen": {
        "name": "Ботанический зеленый",
        "description": "Естественные зеленые оттенки природы",
        "primary": _GREEN,
        "secondary": {
            "50": "#f7fee7", "100": "#ecfccb", "200": "#d9f99d", "300": "#bef264",
            "400": "#a3e635", "500": "#84cc16", "600": "#65a30d", "700": "#4d7c0f",
            "800": "#365314", "900": "#1a2e05", "950": "#0f1b07",
        },
        "accent": {
            "50": "#fefce8", "100": "#fef9c3", "200": "#fef08a", "300": "#fde047",
            "400": "#facc15", "500": "#eab308", "600": "#ca8a04", "700": "#a16207",
            "800": "#854d0e", "900": "#713f12", "950": "#422006",
        },
        "neutral": _NEUTRAL,
        "system": _SYSTEM,
    },
    "royalPurple": {
        "name": "Королевский фиолетовый",
        "description": "Роскошные фиолетовые и лавандовые тона",
        "primary": _PURPLE,
        "secondary": {
            "50": "#f8fafc", "100": "#f1f5f9", "200": "#e2e8f0", "300": "#cbd5e1",
            "400": "#94a3b8", "500": "#64748b", "600": "#475569", "700": "#334155",
            "800": "#1e293b", "900": "#0f172a", "950": "#020617",
        },
        "accent": {
            "50": "#fff1f2", "100": "#ffe4e6", "200": "#fecdd3", "300": "#fda4af",
            "400": "#fb7185", "500": "#f43f5e", "600": "#e11d48", "700": "#be123c",
            "800": "#9f1239", "900": "#881337", "950": "#4c0519",
        },
        "neutral": _NEUTRAL,
        "system": _SYSTEM,
    },
}

PALETTE_GROUPS = ("primary", "secondary", "accent", "neutral", "system")


def is_known_scheme(name: str) -> bool:
    return name in COLOR_SCHEMES


def resolve_scheme_name(stored) -> str:
    # unknown or empty values fall back to the default palette
    if isinstance(stored, str) and stored in COLOR_SCHEMES:
        return stored
    return DEFAULT_SCHEME


def css_variables(name: str) -> Dict[str, str]:
    """Flatten a scheme into `--color-<group>-<step>` custom properties."""
    scheme = COLOR_SCHEMES[name]
    variables = {}
    for group in PALETTE_GROUPS:
        for step, value in scheme[group].items():
            variables[f"--color-{group}-{step}"] = value
    return variables


def scheme_payload(name: str) -> dict:
    data = {k: (dict(v) if isinstance(v, dict) else v) for k, v in COLOR_SCHEMES[name].items()}
    data["css_variables"] = css_variables(name)
    return data


def available_schemes() -> List[dict]:
    return [
        {"key": key, "name": scheme["name"], "description": scheme["description"]}
        for key, scheme in COLOR_SCHEMES.items()
    ]
