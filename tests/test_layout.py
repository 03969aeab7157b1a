import numpy as np
import pytest
from PIL import Image

from ocr_kit.layout_detector import LayoutDetector
from ocr_kit.postprocess import DOC_CLASSES, LayoutPostProcess

from conftest import FailingSession, FakeSession


def test_doc_classes_table():
    assert len(DOC_CLASSES) == 23
    assert DOC_CLASSES[0] == "paragraph_title"
    assert DOC_CLASSES[22] == "aside_text"


def test_rows_filtered_by_score_and_class_id_in_order():
    rows = np.array([
        [2, 0.9, 10, 10, 20, 20],
        [23, 0.9, 10, 10, 20, 20],   # class id out of table
        [-1, 0.9, 10, 10, 20, 20],   # negative class id
        [8, 0.3, 10, 10, 20, 20],    # low score
        [0, 0.5, 30, 30, 40, 40],    # score equal to threshold is kept
    ], dtype=np.float32)

    detections = LayoutPostProcess()(rows, (1.0, 1.0), (100, 100), conf_threshold=0.5)

    assert [d.class_id for d in detections] == [2, 0]
    assert [d.class_name for d in detections] == ["text", "paragraph_title"]


def test_m_schema_halves_coordinates_relative_to_l_schema():
    rows = np.array([[2, 0.9, 40, 20, 80, 60]], dtype=np.float32)
    post = LayoutPostProcess()

    m = post(rows, (2.0, 2.0), (100, 100), coords_in_original=False)[0]
    l = post(rows, (2.0, 2.0), (100, 100), coords_in_original=True)[0]

    assert m.rect == pytest.approx((20, 10, 40, 30))
    assert l.rect == pytest.approx((40, 20, 80, 60))


def test_coordinates_clamped_to_original_image():
    rows = np.array([[1, 0.9, -15, -3, 250, 400]], dtype=np.float32)
    det = LayoutPostProcess()(rows, (1.0, 1.0), (200, 100))[0]
    assert det.rect == (0.0, 0.0, 200.0, 100.0)


def test_threshold_monotonicity():
    rng = np.random.default_rng(0)
    rows = np.column_stack([
        rng.integers(0, 30, 50),
        rng.random(50),
        rng.random((50, 4)) * 100,
    ]).astype(np.float32)
    post = LayoutPostProcess()

    low = post(rows, (1.0, 1.0), (100, 100), conf_threshold=0.2)
    high = post(rows, (1.0, 1.0), (100, 100), conf_threshold=0.7)

    assert set(high) <= set(low)
    for det in low:
        assert 0 <= det.x1 <= det.x2 <= 100
        assert 0 <= det.y1 <= det.y2 <= 100
        assert 0 <= det.class_id < 23


def test_empty_rows():
    assert LayoutPostProcess()(np.zeros((0, 6), dtype=np.float32), (1.0, 1.0), (10, 10)) == []


def test_detector_m_model_feed_and_inverse_scaling():
    rows = np.array([[2, 0.9, 320, 64, 640, 640]], dtype=np.float32)
    session = FakeSession([rows], input_names=["image", "scale_factor"])
    detector = LayoutDetector(session=session)

    image = np.zeros((100, 200, 3), dtype=np.uint8)
    detections = detector.detect(image)

    feed = session.feeds[0]
    assert feed["image"].shape == (1, 3, 640, 640)
    assert np.allclose(feed["scale_factor"], [[3.2, 6.4]])
    assert len(detections) == 1
    assert detections[0].rect == pytest.approx((100, 10, 200, 100))


def test_detector_l_model_feed_keeps_coordinates():
    rows = np.array([[8, 0.8, 20, 30, 120, 90]], dtype=np.float32)
    session = FakeSession([rows], input_names=["im_shape", "image", "scale_factor"])
    detector = LayoutDetector(session=session)

    detections = detector.detect(np.zeros((100, 200, 3), dtype=np.uint8))

    feed = session.feeds[0]
    assert np.allclose(feed["im_shape"], [[100, 200]])
    assert np.allclose(feed["scale_factor"], [[1.0, 1.0]])
    assert detections[0].class_name == "table"
    assert detections[0].rect == pytest.approx((20, 30, 120, 90))


def test_detector_accepts_pil_image():
    rows = np.array([[2, 0.9, 0, 0, 640, 640]], dtype=np.float32)
    detector = LayoutDetector(session=FakeSession([rows], input_names=["image", "scale_factor"]))

    detections = detector.detect(Image.new("RGB", (50, 40), color="white"))

    assert detections[0].rect == pytest.approx((0, 0, 50, 40))


def test_detector_threshold_argument_overrides_config():
    rows = np.array([[2, 0.6, 0, 0, 10, 10]], dtype=np.float32)
    detector = LayoutDetector(session=FakeSession([rows], input_names=["image", "scale_factor"]))
    image = np.zeros((10, 10, 3), dtype=np.uint8)

    assert len(detector.detect(image)) == 1
    assert detector.detect(image, conf_threshold=0.7) == []


def test_detector_inference_failure_returns_empty():
    detector = LayoutDetector(session=FailingSession())
    assert detector.detect(np.zeros((10, 10, 3), dtype=np.uint8)) == []


@pytest.mark.parametrize("outputs", [[np.zeros(7, dtype=np.float32)], []])
def test_detector_malformed_output_returns_empty(outputs):
    detector = LayoutDetector(session=FakeSession(outputs, input_names=["image", "scale_factor"]))
    assert detector.detect(np.zeros((10, 10, 3), dtype=np.uint8)) == []


def test_detector_empty_image_returns_empty():
    session = FakeSession([np.zeros((0, 6))], input_names=["image", "scale_factor"])
    assert LayoutDetector(session=session).detect(np.zeros((0, 0, 3), dtype=np.uint8)) == []
    assert session.feeds == []


def test_detector_requires_model_or_session():
    with pytest.raises(ValueError):
        LayoutDetector()


def test_missing_model_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        LayoutDetector(tmp_path / "missing.onnx")
