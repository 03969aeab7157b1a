import json

import cv2
import numpy as np
import pytest

from conftest import FakeSession, block_map, fake_model_loader, one_hot_probs
from ocr_kit import cli
from ocr_kit.results import Detection
from ocr_kit.text_detector import TextDetector


@pytest.fixture
def page(tmp_path):
    path = tmp_path / "page.png"
    cv2.imwrite(str(path), np.full((64, 80, 3), 255, dtype=np.uint8))
    return path


class FakeLayoutDetector:
    def __init__(self, model_path, config=None):
        self.model_path = model_path

    @classmethod
    def from_pretrained(cls, path_or_repo, config=None):
        return cls(f"{path_or_repo}/layout.onnx", config)

    def detect(self, image, conf_threshold=None):
        return [Detection(class_id=2, class_name="text", score=0.9, x1=1, y1=2, x2=30, y2=40)]


def test_missing_input_file(tmp_path, capsys):
    code = cli.main(["layout", str(tmp_path / "nope.png"), "--model", "m.onnx"])

    assert code == 1
    assert "not found" in capsys.readouterr().err


def test_layout_command(page, monkeypatch, capsys):
    monkeypatch.setattr(cli, "LayoutDetector", FakeLayoutDetector)

    code = cli.main(["layout", str(page), "--model", "m.onnx"])

    assert code == 0
    out = json.loads(capsys.readouterr().out)
    assert out["count"] == 1
    assert out["detections"][0]["class_name"] == "text"
    assert out["image_width"] == 80
    assert out["image_height"] == 64
    assert "inference_time_ms" in out


def test_layout_command_from_repo(page, monkeypatch, capsys):
    monkeypatch.setattr(cli, "LayoutDetector", FakeLayoutDetector)

    assert cli.main(["layout", str(page), "--repo", "org/layout"]) == 0
    assert json.loads(capsys.readouterr().out)["count"] == 1


def test_detect_command(page, monkeypatch, capsys):
    prob_map = block_map(64, 96, rows=(10, 30), cols=(5, 50))[None, None]

    def fake_detector(model_path, config):
        return TextDetector(config=config, session=FakeSession([prob_map]))

    monkeypatch.setattr(cli, "TextDetector", fake_detector)

    code = cli.main(["detect", str(page), "--det-model", "det.onnx"])

    assert code == 0
    out = json.loads(capsys.readouterr().out)
    assert out["count"] == 1
    assert len(out["boxes"][0]["points"]) == 4


def test_ocr_command_from_model_directory(page, tmp_path, monkeypatch, capsys):
    models = tmp_path / "models"
    models.mkdir()
    for name in ("det.onnx", "rec.onnx"):
        (models / name).write_bytes(b"")
    (models / "dict.txt").write_text("a\nb\nc\nd\nA\n", encoding="utf-8")
    prob_map = block_map(64, 96, rows=(10, 30), cols=(5, 50))[None, None]
    monkeypatch.setattr("ocr_kit.onnx_base.ONNXInferenceBase", fake_model_loader({
        "det.onnx": FakeSession([prob_map]),
        "rec.onnx": FakeSession([one_hot_probs([1, 0, 2])[None]]),
    }))

    code = cli.main(["ocr", str(page), "--repo", str(models)])

    assert code == 0
    out = json.loads(capsys.readouterr().out)
    assert [r["text"] for r in out["results"]] == ["ab"]


def test_ocr_command_needs_models(page):
    with pytest.raises(SystemExit):
        cli.main(["ocr", str(page), "--det-model", "det.onnx"])


def test_unreadable_image_reports_error_json(tmp_path, monkeypatch, capsys):
    monkeypatch.setattr(cli, "LayoutDetector", FakeLayoutDetector)
    bad = tmp_path / "bad.png"
    bad.write_bytes(b"not an image")

    code = cli.main(["layout", str(bad), "--model", "m.onnx"])

    assert code == 0
    assert json.loads(capsys.readouterr().out) == {
        "error": "Could not load image",
        "code": "IMAGE_LOAD_FAILED",
    }


def test_model_errors_exit_nonzero(page, capsys):
    code = cli.main(["layout", str(page), "--model", str(page.parent / "missing.onnx")])

    assert code == 1
    assert "Model not found" in capsys.readouterr().err
