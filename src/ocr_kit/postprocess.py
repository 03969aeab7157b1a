"""Postprocessing modules for layout and OCR model outputs."""

import functools
import logging
from typing import List, Sequence, Tuple

import cv2
import numpy as np
import pyclipper
from shapely.geometry import Polygon

from .config import check_activation
from .results import Detection, TextBox

logger = logging.getLogger(__name__)


# 23 document element classes, indexed by the layout model's class id
DOC_CLASSES = [
    "paragraph_title",
    "image",
    "text",
    "number",
    "abstract",
    "content",
    "figure_title",
    "formula",
    "table",
    "table_title",
    "reference",
    "doc_title",
    "footnote",
    "header",
    "algorithm",
    "footer",
    "seal",
    "chart_title",
    "chart",
    "formula_number",
    "header_image",
    "footer_image",
    "aside_text",
]

# Boxes whose top edges are within this many pixels share a reading row
ROW_TOLERANCE = 10


class LayoutPostProcess:
    """Decode [N, 6] layout rows (class_id, score, x1, y1, x2, y2) into detections."""

    def __init__(self, class_names: Sequence[str] = None):
        self.class_names = list(DOC_CLASSES if class_names is None else class_names)

    def __call__(
        self,
        rows: np.ndarray,
        scale: Tuple[float, float],
        image_size: Tuple[int, int],
        conf_threshold: float = 0.5,
        coords_in_original: bool = False,
    ) -> List[Detection]:
        """Convert raw rows to detections in original image space.

        Args:
            rows: Array reshapeable to [N, 6]
            scale: (sx, sy) used to resize the model input
            image_size: Original (width, height)
            conf_threshold: Minimum score to keep a row
            coords_in_original: True when the model already produced original
                coordinates (the 3-input variant), so no inverse scaling applies

        Returns:
            Detections in the rows' original order
        """
        rows = np.asarray(rows, dtype=np.float32)
        if rows.size == 0:
            return []
        rows = rows.reshape(-1, 6)

        width, height = image_size
        if coords_in_original:
            sx, sy = 1.0, 1.0
        else:
            sx, sy = scale

        detections = []
        for class_value, score, x1, y1, x2, y2 in rows:
            if not np.isfinite(class_value) or not score >= conf_threshold:
                continue
            class_id = int(class_value)
            if not 0 <= class_id < len(self.class_names):
                continue
            xs = np.clip(np.sort([x1 / sx, x2 / sx]), 0, width)
            ys = np.clip(np.sort([y1 / sy, y2 / sy]), 0, height)
            detections.append(Detection(
                class_id=class_id,
                class_name=self.class_names[class_id],
                score=float(score),
                x1=float(xs[0]),
                y1=float(ys[0]),
                x2=float(xs[1]),
                y2=float(ys[1]),
            ))

        logger.debug("Layout rows: %d raw, %d kept", rows.shape[0], len(detections))
        return detections


class DBPostProcess:
    """Post-processing for DB (Differentiable Binarization) text detection.

    Converts a probability map to ordered four-point text boxes.
    """

    def __init__(
        self,
        thresh=0.3,
        box_thresh=0.3,
        max_candidates=None,
        min_size=3,
        unclip_ratio=None,
        activation="auto",
    ):
        """Initialize DB post-processor.

        Args:
            thresh: Binarization threshold for probability map
            box_thresh: Minimum mean probability inside a contour
            max_candidates: Maximum number of contours to consider, None for all
            min_size: Boxes with a shorter side below this are dropped
            unclip_ratio: Ratio for expanding text regions, None to disable
            activation: 'auto' (guess from value range), 'logits' or 'probs'
        """
        self.thresh = thresh
        self.box_thresh = box_thresh
        self.max_candidates = max_candidates
        self.min_size = min_size
        self.unclip_ratio = unclip_ratio
        self.activation = check_activation(activation)

    def __call__(
        self,
        pred: np.ndarray,
        scale: Tuple[float, float],
        image_size: Tuple[int, int],
    ) -> List[TextBox]:
        """Convert a prediction map to boxes in original image space.

        Args:
            pred: Probability or logit map, [H, W] or any shape squeezing to it
            scale: (sx, sy) used to produce the map's input image
            image_size: Original (width, height)

        Returns:
            Boxes in reading order
        """
        prob_map = self.activate(pred)
        if prob_map.size == 0:
            return []

        bitmap = prob_map > self.thresh
        boxes = self.boxes_from_bitmap(prob_map, bitmap, scale, image_size)
        return sorted_boxes(boxes)

    def activate(self, pred: np.ndarray) -> np.ndarray:
        """Return a 2D probability map, applying a sigmoid to logits."""
        prob_map = np.asarray(pred, dtype=np.float32)
        if prob_map.size == 0:
            return prob_map.reshape(0, 0)
        if prob_map.ndim < 2:
            raise ValueError(f"Expected 2D probability map, got shape {prob_map.shape}")
        # [N, C, H, W] with N == C == 1
        prob_map = prob_map.reshape(prob_map.shape[-2], prob_map.shape[-1])

        if self.activation == "auto":
            min_val, max_val = float(prob_map.min()), float(prob_map.max())
            logger.debug("Detection output range: min=%.4f, max=%.4f", min_val, max_val)
            apply_sigmoid = min_val < -0.1 or max_val > 1.1
        else:
            apply_sigmoid = self.activation == "logits"

        if apply_sigmoid:
            logger.debug("Applying sigmoid to detection output")
            prob_map = 1.0 / (1.0 + np.exp(-prob_map))
        return prob_map

    def boxes_from_bitmap(self, pred, bitmap, scale, image_size) -> List[TextBox]:
        """Extract quad boxes from binary bitmap."""
        dest_width, dest_height = image_size
        sx, sy = scale

        contours, _ = cv2.findContours(
            bitmap.astype(np.uint8) * 255,
            cv2.RETR_LIST,
            cv2.CHAIN_APPROX_SIMPLE
        )
        logger.debug("Found %d contours", len(contours))
        if self.max_candidates is not None:
            contours = contours[:self.max_candidates]

        boxes = []
        skipped_small = skipped_score = skipped_size = 0
        for contour in contours:
            if contour.shape[0] < 4:
                skipped_small += 1
                continue

            points, sside = self.get_mini_boxes(contour)

            score = min(max(self.box_score(pred, contour), 0.0), 1.0)
            if score < self.box_thresh:
                skipped_score += 1
                continue

            if sside < self.min_size:
                skipped_size += 1
                continue

            if self.unclip_ratio is not None:
                expanded = self.unclip(points, self.unclip_ratio)
                if len(expanded) != 1:
                    continue
                points, sside = self.get_mini_boxes(
                    np.array(expanded[0], dtype=np.float32).reshape(-1, 1, 2)
                )

            points = np.array(points, dtype=np.float32)
            points[:, 0] = np.clip(points[:, 0] / sx, 0, dest_width)
            points[:, 1] = np.clip(points[:, 1] / sy, 0, dest_height)
            boxes.append(TextBox(points=order_points(points), score=float(score)))

        logger.debug(
            "DB boxes: %d kept (skipped: %d small contour, %d low score, %d small size)",
            len(boxes), skipped_small, skipped_score, skipped_size,
        )
        return boxes

    def unclip(self, box, unclip_ratio):
        """Expand box using Vatti clipping algorithm."""
        poly = Polygon(box)
        distance = poly.area * unclip_ratio / poly.length
        offset = pyclipper.PyclipperOffset()
        offset.AddPath(box, pyclipper.JT_ROUND, pyclipper.ET_CLOSEDPOLYGON)
        return offset.Execute(distance)

    def get_mini_boxes(self, contour):
        """Get the corners of the minimum area rectangle and its shorter side."""
        bounding_box = cv2.minAreaRect(contour)
        points = cv2.boxPoints(bounding_box)
        return points, min(bounding_box[1])

    def box_score(self, bitmap, contour):
        """Mean map value inside the filled contour."""
        h, w = bitmap.shape[:2]
        pts = contour.reshape(-1, 2)

        xmin = int(np.clip(pts[:, 0].min(), 0, w - 1))
        xmax = int(np.clip(pts[:, 0].max(), 0, w - 1))
        ymin = int(np.clip(pts[:, 1].min(), 0, h - 1))
        ymax = int(np.clip(pts[:, 1].max(), 0, h - 1))

        mask = np.zeros((ymax - ymin + 1, xmax - xmin + 1), dtype=np.uint8)
        cv2.drawContours(mask, [contour], 0, 1, cv2.FILLED, offset=(-xmin, -ymin))
        return cv2.mean(bitmap[ymin:ymax + 1, xmin:xmax + 1], mask)[0]


def order_points(points: np.ndarray) -> np.ndarray:
    """Order 4 points as top-left, top-right, bottom-right, bottom-left.

    Points are sorted by y; the upper pair is made left-to-right and the
    lower pair right-to-left.
    """
    pts = points[np.argsort(points[:, 1], kind="stable")].copy()
    if pts[0, 0] > pts[1, 0]:
        pts[[0, 1]] = pts[[1, 0]]
    if pts[2, 0] < pts[3, 0]:
        pts[[2, 3]] = pts[[3, 2]]
    return pts


def _compare_reading_order(a: TextBox, b: TextBox) -> int:
    a_y = (a.points[0][1] + a.points[1][1]) / 2
    b_y = (b.points[0][1] + b.points[1][1]) / 2
    if abs(a_y - b_y) > ROW_TOLERANCE:
        return -1 if a_y < b_y else 1
    if a.points[0][0] < b.points[0][0]:
        return -1
    if a.points[0][0] > b.points[0][0]:
        return 1
    return 0


def sorted_boxes(boxes: List[TextBox]) -> List[TextBox]:
    """Sort text boxes from top to bottom, left to right within a row."""
    return sorted(boxes, key=functools.cmp_to_key(_compare_reading_order))


class CTCLabelDecode:
    """Greedy CTC decoding for text recognition."""

    def __init__(self, character: Sequence[str], activation: str = "auto"):
        """Initialize CTC decoder.

        Args:
            character: Tokens indexed by model class; index 0 is the blank
            activation: 'auto' (guess from the first timestep), 'logits' or 'probs'
        """
        self.character = list(character)
        self.activation = check_activation(activation)

    def needs_softmax(self, first_row: np.ndarray) -> bool:
        if self.activation != "auto":
            return self.activation == "logits"
        row_min = float(first_row.min())
        row_sum = float(first_row.sum())
        logger.debug("CTC first timestep: min=%.4f, sum=%.4f", row_min, row_sum)
        return row_min < -0.001 or abs(row_sum - 1.0) > 0.1

    def __call__(self, preds: np.ndarray) -> Tuple[str, float]:
        """Decode a [seq_len, vocab_size] matrix (a leading batch of 1 is allowed).

        Returns:
            Tuple of (text, mean probability of emitted tokens)
        """
        if isinstance(preds, (tuple, list)):
            preds = preds[-1]
        preds = np.asarray(preds, dtype=np.float32)
        if preds.size == 0:
            return "", 0.0
        preds = preds.reshape(-1, preds.shape[-1])

        if self.needs_softmax(preds[0]):
            exp = np.exp(preds - preds.max(axis=1, keepdims=True))
            preds = exp / exp.sum(axis=1, keepdims=True)

        preds_idx = preds.argmax(axis=1)
        preds_prob = preds.max(axis=1)
        return self.decode(preds_idx, preds_prob)

    def decode(self, text_index, text_prob) -> Tuple[str, float]:
        """Collapse repeats against the previous timestep's index and drop blanks."""
        char_list = []
        conf_list = []
        prev_idx = -1
        for idx, prob in zip(text_index, text_prob):
            idx = int(idx)
            if idx != 0 and idx != prev_idx:
                if idx < len(self.character):
                    char_list.append(self.character[idx])
                    conf_list.append(float(prob))
                else:
                    logger.warning(
                        "CTC index %d out of range (dictionary size=%d)",
                        idx, len(self.character),
                    )
            prev_idx = idx

        if not conf_list:
            return "".join(char_list), 0.0
        return "".join(char_list), float(np.clip(np.mean(conf_list), 0.0, 1.0))
