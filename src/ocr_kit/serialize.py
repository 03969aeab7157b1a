"""JSON rendering of detections, text boxes and text lines.

Numbers are written with fixed precision (coordinates 2 decimals, scores 4)
so the output matches what existing consumers parse.
"""

from typing import Iterable, List, Optional

from .results import Detection, TextBox, TextLine

IMAGE_LOAD_FAILED = "IMAGE_LOAD_FAILED"
ENGINE_NOT_INITIALIZED = "ENGINE_NOT_INITIALIZED"
BUFFER_INVALID = "BUFFER_INVALID"

_ESCAPES = {
    '"': '\\"',
    '\\': '\\\\',
    '\n': '\\n',
    '\r': '\\r',
    '\t': '\\t',
}


def escape_text(text: str) -> str:
    return "".join(_ESCAPES.get(c, c) for c in text)


def _rect_fields(x1, y1, x2, y2) -> str:
    return f'"x1":{x1:.2f},"y1":{y1:.2f},"x2":{x2:.2f},"y2":{y2:.2f}'


def _envelope(
    key: str,
    items: List[str],
    inference_time_ms: Optional[int],
    image_width: Optional[int],
    image_height: Optional[int],
) -> str:
    parts = [f'"{key}":[' + ",".join(items) + "]", f'"count":{len(items)}']
    if inference_time_ms is not None:
        parts.append(f'"inference_time_ms":{int(inference_time_ms)}')
    if image_width is not None and image_height is not None:
        parts.append(f'"image_width":{int(image_width)}')
        parts.append(f'"image_height":{int(image_height)}')
    return "{" + ",".join(parts) + "}"


def detections_to_json(
    detections: Iterable[Detection],
    inference_time_ms: Optional[int] = None,
    image_width: Optional[int] = None,
    image_height: Optional[int] = None,
) -> str:
    items = [
        "{" + _rect_fields(d.x1, d.y1, d.x2, d.y2)
        + f',"score":{d.score:.4f},"class_id":{d.class_id},'
        + f'"class_name":"{escape_text(d.class_name)}"' + "}"
        for d in detections
    ]
    return _envelope("detections", items, inference_time_ms, image_width, image_height)


def text_lines_to_json(
    lines: Iterable[TextLine],
    inference_time_ms: Optional[int] = None,
    image_width: Optional[int] = None,
    image_height: Optional[int] = None,
) -> str:
    items = [
        "{" + _rect_fields(r.x1, r.y1, r.x2, r.y2)
        + f',"score":{r.score:.4f},"text":"{escape_text(r.text)}"' + "}"
        for r in lines
    ]
    return _envelope("results", items, inference_time_ms, image_width, image_height)


def text_boxes_to_json(
    boxes: Iterable[TextBox],
    inference_time_ms: Optional[int] = None,
    image_width: Optional[int] = None,
    image_height: Optional[int] = None,
) -> str:
    items = []
    for box in boxes:
        points = ",".join(f"[{x:.2f},{y:.2f}]" for x, y in box.as_list())
        items.append(f'{{"points":[{points}],"score":{box.score:.4f}}}')
    return _envelope("boxes", items, inference_time_ms, image_width, image_height)


def error_to_json(message: str, code: str) -> str:
    return f'{{"error":"{escape_text(message)}","code":"{code}"}}'
