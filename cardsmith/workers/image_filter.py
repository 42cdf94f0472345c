"""CSS-style filter expressions for the card photo layer.

Supports the filter functions used in card data, e.g.
``brightness(0.8) contrast(120%) blur(2px)``:

- blur(<length>)
- brightness / contrast / grayscale / invert / opacity / saturate / sepia
  (<number> or <percentage>)
- hue-rotate(<angle>)

Functions are applied left to right. Unknown functions and bad arguments are
logged and skipped; a bad filter never prevents the photo from being drawn.
"""

import math
import re
from dataclasses import dataclass
from typing import List, Optional

import numpy as np
from loguru import logger
from PIL import Image, ImageFilter

_FUNCTION_RE = re.compile(r"([a-zA-Z-]+)\s*\(([^)]*)\)")

# Functions whose argument defaults to 1 (identity is 1)
_AMOUNT_DEFAULTS = {
    "brightness": 1.0,
    "contrast": 1.0,
    "grayscale": 1.0,
    "invert": 1.0,
    "opacity": 1.0,
    "saturate": 1.0,
    "sepia": 1.0,
}

# Amounts that CSS clamps to [0, 1]
_CLAMPED = {"grayscale", "invert", "opacity", "sepia"}


@dataclass(frozen=True)
class FilterOp:
    """One parsed filter function."""
    name: str
    amount: float


def _parse_amount(arg: str) -> float:
    arg = arg.strip()
    if arg.endswith("%"):
        return float(arg[:-1]) / 100.0
    return float(arg)


def _parse_length(arg: str) -> float:
    arg = arg.strip().lower()
    if arg.endswith("px"):
        arg = arg[:-2]
    return float(arg)


def _parse_angle(arg: str) -> float:
    """Parse a CSS angle into degrees."""
    arg = arg.strip().lower()
    for unit, factor in (("deg", 1.0), ("grad", 0.9), ("rad", 180.0 / math.pi), ("turn", 360.0)):
        if arg.endswith(unit):
            return float(arg[: -len(unit)]) * factor
    value = float(arg)
    if value != 0:
        raise ValueError("angle needs a unit")
    return 0.0


def parse_filter(expression: Optional[str]) -> List[FilterOp]:
    """Parse a filter expression into operations.

    ``None``, empty strings and ``none`` yield no operations.
    """
    if not expression:
        return []
    expression = expression.strip()
    if not expression or expression.lower() == "none":
        return []

    ops: List[FilterOp] = []
    for name, arg in _FUNCTION_RE.findall(expression):
        name = name.lower()
        try:
            if name == "blur":
                amount = _parse_length(arg) if arg.strip() else 0.0
            elif name == "hue-rotate":
                amount = _parse_angle(arg) if arg.strip() else 0.0
            elif name in _AMOUNT_DEFAULTS:
                amount = _parse_amount(arg) if arg.strip() else _AMOUNT_DEFAULTS[name]
            else:
                logger.warning(f"Unsupported image filter function: {name}")
                continue
        except ValueError:
            logger.warning(f"Invalid argument for image filter {name}({arg})")
            continue

        if amount < 0 and name != "hue-rotate":
            logger.warning(f"Negative argument for image filter {name}({arg})")
            continue
        if name in _CLAMPED:
            amount = min(amount, 1.0)
        ops.append(FilterOp(name=name, amount=amount))

    if not ops:
        logger.warning(f"Image filter has no usable functions: {expression!r}")
    return ops


# ---- color matrices (W3C Filter Effects, linear in sRGB values) ----

def _grayscale_matrix(a: float) -> np.ndarray:
    a = 1.0 - a
    return np.array([
        [0.2126 + 0.7874 * a, 0.7152 - 0.7152 * a, 0.0722 - 0.0722 * a],
        [0.2126 - 0.2126 * a, 0.7152 + 0.2848 * a, 0.0722 - 0.0722 * a],
        [0.2126 - 0.2126 * a, 0.7152 - 0.7152 * a, 0.0722 + 0.9278 * a],
    ])


def _sepia_matrix(a: float) -> np.ndarray:
    a = 1.0 - a
    return np.array([
        [0.393 + 0.607 * a, 0.769 - 0.769 * a, 0.189 - 0.189 * a],
        [0.349 - 0.349 * a, 0.686 + 0.314 * a, 0.168 - 0.168 * a],
        [0.272 - 0.272 * a, 0.534 - 0.534 * a, 0.131 + 0.869 * a],
    ])


def _saturate_matrix(s: float) -> np.ndarray:
    return np.array([
        [0.213 + 0.787 * s, 0.715 - 0.715 * s, 0.072 - 0.072 * s],
        [0.213 - 0.213 * s, 0.715 + 0.285 * s, 0.072 - 0.072 * s],
        [0.213 - 0.213 * s, 0.715 - 0.715 * s, 0.072 + 0.928 * s],
    ])


def _hue_rotate_matrix(degrees: float) -> np.ndarray:
    rad = math.radians(degrees)
    c, s = math.cos(rad), math.sin(rad)
    return np.array([
        [0.213 + c * 0.787 - s * 0.213, 0.715 - c * 0.715 - s * 0.715, 0.072 - c * 0.072 + s * 0.928],
        [0.213 - c * 0.213 + s * 0.143, 0.715 + c * 0.285 + s * 0.140, 0.072 - c * 0.072 - s * 0.283],
        [0.213 - c * 0.213 - s * 0.787, 0.715 - c * 0.715 + s * 0.715, 0.072 + c * 0.928 + s * 0.072],
    ])


_MATRICES = {
    "grayscale": _grayscale_matrix,
    "sepia": _sepia_matrix,
    "saturate": _saturate_matrix,
    "hue-rotate": _hue_rotate_matrix,
}


def _apply_pixel_op(data: np.ndarray, op: FilterOp) -> np.ndarray:
    """Apply a per-pixel op to float RGBA data in [0, 1]."""
    rgb = data[..., :3]
    if op.name == "brightness":
        rgb = rgb * op.amount
    elif op.name == "contrast":
        rgb = (rgb - 0.5) * op.amount + 0.5
    elif op.name == "invert":
        rgb = rgb * (1.0 - op.amount) + (1.0 - rgb) * op.amount
    elif op.name == "opacity":
        data[..., 3] = data[..., 3] * op.amount
        return data
    else:
        matrix = _MATRICES[op.name](op.amount)
        rgb = rgb @ matrix.T
    data[..., :3] = np.clip(rgb, 0.0, 1.0)
    return data


def apply_filter(image: Image.Image, expression: Optional[str]) -> Image.Image:
    """Return a filtered RGBA copy of ``image``."""
    result = image.convert("RGBA")
    ops = parse_filter(expression)
    if not ops:
        return result

    data: Optional[np.ndarray] = None
    for op in ops:
        if op.name == "blur":
            if data is not None:
                result = _to_image(data)
                data = None
            if op.amount > 0:
                result = result.filter(ImageFilter.GaussianBlur(op.amount))
            continue
        if data is None:
            data = np.asarray(result, dtype=np.float64) / 255.0
            data = data.copy()
        data = _apply_pixel_op(data, op)

    if data is not None:
        result = _to_image(data)
    return result


def _to_image(data: np.ndarray) -> Image.Image:
    pixels = np.clip(np.rint(data * 255.0), 0, 255).astype(np.uint8)
    return Image.fromarray(pixels)
