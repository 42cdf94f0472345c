"""Font discovery and CSS font-spec parsing for card text."""

import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import List, Optional, Union

from loguru import logger
from PIL import ImageFont

from cardsmith.config import settings

FontType = Union[ImageFont.FreeTypeFont, ImageFont.ImageFont]

# Candidate files per (family, bold), macOS -> Linux -> Windows
_FONT_CANDIDATES = {
    ("serif", False): [
        "/System/Library/Fonts/Supplemental/Times New Roman.ttf",
        "/usr/share/fonts/truetype/dejavu/DejaVuSerif.ttf",
        "/usr/share/fonts/TTF/DejaVuSerif.ttf",
        "/usr/share/fonts/truetype/liberation/LiberationSerif-Regular.ttf",
        "C:/Windows/Fonts/times.ttf",
    ],
    ("serif", True): [
        "/System/Library/Fonts/Supplemental/Times New Roman Bold.ttf",
        "/usr/share/fonts/truetype/dejavu/DejaVuSerif-Bold.ttf",
        "/usr/share/fonts/TTF/DejaVuSerif-Bold.ttf",
        "/usr/share/fonts/truetype/liberation/LiberationSerif-Bold.ttf",
        "C:/Windows/Fonts/timesbd.ttf",
    ],
    ("sans-serif", False): [
        "/System/Library/Fonts/Helvetica.ttc",
        "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
        "/usr/share/fonts/TTF/DejaVuSans.ttf",
        "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
        "C:/Windows/Fonts/arial.ttf",
    ],
    ("sans-serif", True): [
        "/System/Library/Fonts/Supplemental/Arial Bold.ttf",
        "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
        "/usr/share/fonts/TTF/DejaVuSans-Bold.ttf",
        "/usr/share/fonts/truetype/liberation/LiberationSans-Bold.ttf",
        "C:/Windows/Fonts/arialbd.ttf",
    ],
    ("monospace", False): [
        "/System/Library/Fonts/Menlo.ttc",
        "/usr/share/fonts/truetype/dejavu/DejaVuSansMono.ttf",
        "/usr/share/fonts/TTF/DejaVuSansMono.ttf",
        "C:/Windows/Fonts/consola.ttf",
    ],
    ("monospace", True): [
        "/usr/share/fonts/truetype/dejavu/DejaVuSansMono-Bold.ttf",
        "/usr/share/fonts/TTF/DejaVuSansMono-Bold.ttf",
        "C:/Windows/Fonts/consolab.ttf",
    ],
}

# CSS generic families and common names mapped to a candidate family
_FAMILY_ALIASES = {
    "serif": "serif",
    "times": "serif",
    "times new roman": "serif",
    "georgia": "serif",
    "fantasy": "serif",
    "cursive": "serif",
    "sans-serif": "sans-serif",
    "sans": "sans-serif",
    "arial": "sans-serif",
    "helvetica": "sans-serif",
    "system-ui": "sans-serif",
    "monospace": "monospace",
    "courier": "monospace",
    "courier new": "monospace",
}

_BOLD_WEIGHTS = {"bold", "bolder", "600", "700", "800", "900"}
_SIZE_RE = re.compile(r"^(\d+(?:\.\d+)?)(px|pt)?(?:/\S+)?$", re.IGNORECASE)


@dataclass(frozen=True)
class FontSpec:
    """A parsed font request."""
    family: str = "serif"
    size: int = 44
    bold: bool = False
    # Explicit font file, used when the family names a file on disk
    path: Optional[str] = None


def parse_font_spec(spec: Optional[str], default: FontSpec) -> FontSpec:
    """Parse a CSS-style font shorthand such as ``bold 48px serif``.

    Unparseable parts keep the default. A family that is an existing
    .ttf/.otf/.ttc path is loaded directly.
    """
    if not spec or not spec.strip():
        return default

    size = default.size
    bold = default.bold
    family_parts: List[str] = []
    found_size = False

    for token in spec.split():
        lowered = token.lower()
        if not found_size:
            if lowered in _BOLD_WEIGHTS:
                bold = True
                continue
            if lowered in ("normal", "italic", "oblique", "small-caps", "400"):
                continue
            match = _SIZE_RE.match(lowered)
            if match:
                value = float(match.group(1))
                if match.group(2) == "pt":
                    value = value * 4 / 3
                size = max(1, int(round(value)))
                found_size = True
                continue
        family_parts.append(token)

    family_text = " ".join(family_parts).split(",")[0].strip().strip("'\"")
    if not family_text:
        return FontSpec(family=default.family, size=size, bold=bold, path=default.path)

    if Path(family_text).suffix.lower() in (".ttf", ".otf", ".ttc"):
        return FontSpec(family=default.family, size=size, bold=bold, path=family_text)

    family = _FAMILY_ALIASES.get(family_text.lower())
    if family is None:
        logger.debug(f"Unknown font family '{family_text}', using {default.family}")
        family = default.family
    return FontSpec(family=family, size=size, bold=bold)


def _candidate_paths(family: str, bold: bool) -> List[str]:
    paths: List[str] = []
    if settings.fonts_dir:
        fonts_dir = Path(settings.fonts_dir)
        style = "bold" if bold else "regular"
        paths.append(str(fonts_dir / f"{family}-{style}.ttf"))
        paths.append(str(fonts_dir / f"{family}.ttf"))
    paths.extend(_FONT_CANDIDATES.get((family, bold), []))
    if bold:
        # Regular face is better than the bitmap fallback
        paths.extend(_FONT_CANDIDATES.get((family, False), []))
    return paths


def _find_font(candidates: List[str], size: int) -> Optional[FontType]:
    """Try loading a font from a list of candidate paths."""
    for path in candidates:
        try:
            return ImageFont.truetype(path, size)
        except OSError:
            continue
    return None


@lru_cache(maxsize=128)
def load_font(spec: FontSpec) -> FontType:
    """Load the font for a spec, falling back to Pillow's bundled font."""
    font = None
    if spec.path:
        font = _find_font([spec.path], spec.size)
        if font is None:
            logger.warning(f"Font file not loadable: {spec.path}")
    if font is None:
        font = _find_font(_candidate_paths(spec.family, spec.bold), spec.size)
    if font is None:
        logger.debug(f"No system font for {spec.family}, using Pillow default")
        font = ImageFont.load_default(size=spec.size)
    return font
