"""Utility functions for the OCR pipeline."""

import logging
from pathlib import Path
from typing import List, Optional, Union

import cv2
import numpy as np

logger = logging.getLogger(__name__)


def get_rotate_crop_image(img: np.ndarray, points: np.ndarray) -> Optional[np.ndarray]:
    """Crop and straighten a text region from image.

    Args:
        img: Source image
        points: Text region points (4x2 array, top-left first, clockwise)

    Returns:
        Upright text image, or None when the region is degenerate
    """
    points = np.asarray(points, dtype=np.float32).reshape(-1, 2)
    if points.shape[0] != 4 or img is None or img.size == 0:
        return None

    img_h, img_w = img.shape[:2]
    x1 = int(max(0.0, points[:, 0].min()))
    y1 = int(max(0.0, points[:, 1].min()))
    x2 = int(min(float(img_w), points[:, 0].max()))
    y2 = int(min(float(img_h), points[:, 1].max()))
    if x2 <= x1 or y2 <= y1:
        return None

    img_crop_width = max(float(np.linalg.norm(points[1] - points[0])), 1.0)
    img_crop_height = max(float(np.linalg.norm(points[3] - points[0])), 1.0)

    pts_std = np.float32([
        [0, 0],
        [img_crop_width, 0],
        [img_crop_width, img_crop_height],
        [0, img_crop_height]
    ])

    M = cv2.getPerspectiveTransform(points, pts_std)
    dst_img = cv2.warpPerspective(
        img,
        M,
        (int(img_crop_width), int(img_crop_height)),
        borderMode=cv2.BORDER_REPLICATE,
        flags=cv2.INTER_CUBIC
    )

    # Recognition expects horizontal text
    dst_img_height, dst_img_width = dst_img.shape[0:2]
    if dst_img_height > dst_img_width * 1.5:
        logger.debug("Rotating vertical text region %dx%d", dst_img_width, dst_img_height)
        dst_img = cv2.rotate(dst_img, cv2.ROTATE_90_CLOCKWISE)

    return dst_img


def load_character_dict(dict_path: Union[str, Path]) -> List[str]:
    """Load a recognition dictionary.

    Index 0 is the CTC blank. Empty lines stand for a space, a trailing space
    token is guaranteed, and an empty end/padding token closes the list.
    """
    character = [""]
    line_count = 0
    with open(dict_path, "rb") as fin:
        for raw in fin:
            line_count += 1
            line = raw.decode("utf-8").rstrip("\r\n")
            character.append(line if line else " ")

    if character[-1] != " ":
        character.append(" ")
    character.append("")

    logger.debug("Loaded dictionary: %d lines, %d entries", line_count, len(character))
    return character
