# hmi_agent/services/themes.py

from typing import Dict

from hmi_agent.schemas import ColorScheme

THEMES: Dict[str, Dict[str, str]] = {
    "water_treatment": {
        "canvasBackground": "#F0F8FF", "headerBackground": "#2C3E50", "headerText": "#ECF0F1",
        "headerSubtext": "#BDC3C7", "screenBackground": "#FFFFFF", "screenHeaderBg": "#3498DB",
        "screenHeaderText": "#FFFFFF", "primary": "#3498DB", "secondary": "#95A5A6",
        "accent": "#E74C3C", "success": "#27AE60", "warning": "#F39C12", "text": "#2C3E50",
        "border": "#BDC3C7", "buttonFill": "#ECF0F1", "buttonBorder": "#3498DB",
        "tableBorder": "#BDC3C7", "tableHeader": "#EBF3FD", "indicator": "#27AE60",
        "inputBorder": "#3498DB", "inputFill": "#FFFFFF",
    },
    "power_generation": {
        "canvasBackground": "#FFF8DC", "headerBackground": "#8B4513", "headerText": "#FFFFFF",
        "headerSubtext": "#F4A460", "screenBackground": "#FFFFFF", "screenHeaderBg": "#FF8C00",
        "screenHeaderText": "#FFFFFF", "primary": "#FF8C00", "secondary": "#CD853F",
        "accent": "#B22222", "success": "#228B22", "warning": "#FFD700", "text": "#8B4513",
        "border": "#DEB887", "buttonFill": "#FFF8DC", "buttonBorder": "#FF8C00",
        "tableBorder": "#DEB887", "tableHeader": "#FFEBCD", "indicator": "#228B22",
        "inputBorder": "#FF8C00", "inputFill": "#FFFFFF",
    },
    "gas": {
        "canvasBackground": "#F5F5F5", "headerBackground": "#4A4A4A", "headerText": "#FFFFFF",
        "headerSubtext": "#CCCCCC", "screenBackground": "#FFFFFF", "screenHeaderBg": "#6A5ACD",
        "screenHeaderText": "#FFFFFF", "primary": "#6A5ACD", "secondary": "#9370DB",
        "accent": "#DC143C", "success": "#32CD32", "warning": "#FFA500", "text": "#4A4A4A",
        "border": "#D3D3D3", "buttonFill": "#F8F8FF", "buttonBorder": "#6A5ACD",
        "tableBorder": "#D3D3D3", "tableHeader": "#E6E6FA", "indicator": "#32CD32",
        "inputBorder": "#6A5ACD", "inputFill": "#FFFFFF",
    },
}

# Dark palette used inside a single 800x600 screen.
SCREEN_PALETTE = {
    "background": "#34495E",
    "primary": "#3498DB",
    "secondary": "#F39C12",
    "accent": "#E74C3C",
    "success": "#27AE60",
    "text": "#ECF0F1",
    "header": "#2C3E50",
}


def select_theme(system_type: str) -> ColorScheme:
    """Pick the catalog theme whose key overlaps the system type, else the default."""
    system_type = (system_type or "").lower()
    for key, theme in THEMES.items():
        if key in system_type or (system_type and system_type in key):
            return ColorScheme.model_validate(theme)
    if "water" in system_type:
        return ColorScheme.model_validate(THEMES["water_treatment"])
    return ColorScheme()


def screen_scheme(system_type: str) -> ColorScheme:
    """Theme roles with the dark single-screen palette on top."""
    return select_theme(system_type).model_copy(update=SCREEN_PALETTE)


def merge_scheme(partial: Dict[str, str], system_type: str) -> ColorScheme:
    """Complete a partial scheme (as returned by the model) from the screen palette."""
    base = screen_scheme(system_type).model_dump(by_alias=True)
    base.update({k: v for k, v in partial.items() if isinstance(v, str) and v.startswith("#")})
    return ColorScheme.model_validate(base)
