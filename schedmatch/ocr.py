"""
OCR adapter (schedule photo -> text).

Wraps an optional text recognizer. The default recognizer is Tesseract via
pytesseract; any callable with the shape

    recognize(image_uri) -> {"text": str?, "blocks": [{"text", "frame", "confidence"?}]}

can be passed instead.

The result is tagged: OcrResult.available is False when the recognizer is
missing or crashed, so callers can tell "could not run" from "found nothing"
and send the user to file import or manual entry.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Callable, Dict, Optional
from urllib.parse import unquote, urlparse

from PIL import Image

from schedmatch.config import OCR_CONFIG
from schedmatch.model import BoundingBox, OcrResult, TextBlock

try:
    import pytesseract

    if OCR_CONFIG["tesseract_cmd"] and Path(OCR_CONFIG["tesseract_cmd"]).is_file():
        pytesseract.pytesseract.tesseract_cmd = OCR_CONFIG["tesseract_cmd"]
except ImportError:  # pragma: no cover
    pytesseract = None

logger = logging.getLogger(__name__)

Recognizer = Callable[[str], Dict[str, Any]]


# ---------------------------------------------------------------------------
# Capability checks
# ---------------------------------------------------------------------------


@lru_cache(maxsize=None)
def is_ocr_available() -> bool:
    """
    True when pytesseract is importable and the tesseract binary answers.
    Checked once per process.
    """
    if pytesseract is None:
        logger.info("pytesseract is not installed, OCR disabled")
        return False
    try:
        version = pytesseract.get_tesseract_version()
    except (pytesseract.TesseractNotFoundError, OSError) as e:
        logger.info(f"Tesseract binary not found, OCR disabled: {e}")
        return False
    logger.debug(f"Tesseract {version} available")
    return True


def _uri_to_path(image_uri: str) -> Path:
    if image_uri.startswith("file://"):
        return Path(unquote(urlparse(image_uri).path))
    return Path(image_uri)


def check_image_readable(image_uri: str) -> bool:
    """
    True when the image exists and Pillow can decode its header.
    """
    path = _uri_to_path(image_uri)
    if not path.is_file():
        return False
    try:
        with Image.open(path) as img:
            img.verify()
    except OSError:
        return False
    return True


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------


def _num(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _normalize_frame(frame: Any) -> BoundingBox:
    """
    Accepts the frame shapes recognizers hand back:
    - {"left", "top", "width", "height"}
    - {"x", "y", "width", "height"}
    - {"left", "top", "right", "bottom"}
    - {"origin": {"x", "y"}, "size": {"width", "height"}}
    - [x0, y0, x1, y1]
    """
    if not frame:
        return BoundingBox()

    if isinstance(frame, (list, tuple)):
        if len(frame) != 4:
            return BoundingBox()
        x0, y0, x1, y1 = (_num(v) for v in frame)
        return BoundingBox(left=x0, top=y0, width=x1 - x0, height=y1 - y0)

    if not isinstance(frame, dict):
        return BoundingBox()

    if "origin" in frame or "size" in frame:
        origin = frame.get("origin")
        size = frame.get("size")
        origin = origin if isinstance(origin, dict) else {}
        size = size if isinstance(size, dict) else {}
        return BoundingBox(
            left=_num(origin.get("x")),
            top=_num(origin.get("y")),
            width=_num(size.get("width")),
            height=_num(size.get("height")),
        )

    left = _num(frame.get("left", frame.get("x")))
    top = _num(frame.get("top", frame.get("y")))
    if "width" in frame or "height" in frame:
        return BoundingBox(left=left, top=top, width=_num(frame.get("width")), height=_num(frame.get("height")))
    return BoundingBox(
        left=left,
        top=top,
        width=_num(frame.get("right")) - left,
        height=_num(frame.get("bottom")) - top,
    )


def _normalize_confidence(value: Any) -> Optional[float]:
    if value is None:
        return None
    conf = _num(value)
    # Tesseract reports 0-100, native recognizers 0-1
    return conf / 100.0 if conf > 1 else conf


# ---------------------------------------------------------------------------
# Tesseract recognizer
# ---------------------------------------------------------------------------


def tesseract_recognize(image_uri: str) -> Dict[str, Any]:
    """
    Run Tesseract and group its word boxes into line blocks.
    """
    with Image.open(_uri_to_path(image_uri)) as img:
        data = pytesseract.image_to_data(img, lang=OCR_CONFIG["lang"], output_type=pytesseract.Output.DICT)

    min_conf = OCR_CONFIG["min_confidence"]
    lines: Dict[tuple, Dict[str, Any]] = {}

    for i, word in enumerate(data.get("text", [])):
        word = (word or "").strip()
        if not word:
            continue
        conf = _num(data["conf"][i])
        if conf < max(min_conf, 0):
            continue

        key = (data["block_num"][i], data["par_num"][i], data["line_num"][i])
        left = int(data["left"][i])
        top = int(data["top"][i])
        right = left + int(data["width"][i])
        bottom = top + int(data["height"][i])

        entry = lines.get(key)
        if entry is None:
            lines[key] = {"words": [word], "confs": [conf], "left": left, "top": top, "right": right, "bottom": bottom}
            continue
        entry["words"].append(word)
        entry["confs"].append(conf)
        entry["left"] = min(entry["left"], left)
        entry["top"] = min(entry["top"], top)
        entry["right"] = max(entry["right"], right)
        entry["bottom"] = max(entry["bottom"], bottom)

    blocks = [
        {
            "text": " ".join(e["words"]),
            "frame": {"left": e["left"], "top": e["top"], "right": e["right"], "bottom": e["bottom"]},
            "confidence": sum(e["confs"]) / len(e["confs"]),
        }
        for e in lines.values()
    ]
    return {"text": "\n".join(b["text"] for b in blocks), "blocks": blocks}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def extract_text_from_image(image_uri: str, recognizer: Optional[Recognizer] = None) -> OcrResult:
    """
    Recognize text in a schedule photo. Never raises.
    """
    unavailable = OcrResult(raw_text="", blocks=[], image_uri=image_uri, available=False)

    if recognizer is None:
        if not is_ocr_available():
            return unavailable
        recognizer = tesseract_recognize

    try:
        result = recognizer(image_uri) or {}
    except Exception as e:
        logger.error(f"Text recognition failed for {image_uri}: {e}")
        return unavailable

    if not isinstance(result, dict):
        logger.error(f"Text recognizer returned {type(result).__name__} for {image_uri}")
        return unavailable

    raw_blocks = result.get("blocks")
    blocks = []
    for raw in raw_blocks if isinstance(raw_blocks, (list, tuple)) else []:
        if not isinstance(raw, dict):
            continue
        text = str(raw.get("text") or "").strip()
        if not text:
            continue
        blocks.append(
            TextBlock(
                text=text,
                bounding_box=_normalize_frame(raw.get("frame")),
                confidence=_normalize_confidence(raw.get("confidence")),
            )
        )

    raw_text = result.get("text")
    if not isinstance(raw_text, str) or not raw_text:
        raw_text = "\n".join(b.text for b in blocks)
    logger.debug(f"OCR extracted {len(raw_text)} characters in {len(blocks)} blocks")
    return OcrResult(raw_text=raw_text, blocks=blocks, image_uri=image_uri, available=True)
