"""
Command Line Interface for layout detection and OCR
"""

import argparse
import logging
import sys
from pathlib import Path

from .api import detect_layout_from_path, detect_text_from_path, recognize_text_from_path
from .config import DetectorConfig, LayoutConfig, RecognizerConfig
from .layout_detector import LayoutDetector
from .pipeline import OcrEngine
from .text_detector import TextDetector


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ocr-kit",
        description="Document layout detection and text OCR with ONNX models",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Layout boxes for a page image
  ocr-kit layout page.jpg --model layout.onnx

  # Full OCR (detection + recognition)
  ocr-kit ocr page.jpg --det-model det.onnx --rec-model rec.onnx --dict dict.txt

  # Full OCR with models from a directory or Hugging Face repo
  ocr-kit ocr page.jpg --repo ./models

  # Text boxes only
  ocr-kit detect page.jpg --det-model det.onnx
        """
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable debug logging'
    )
    parser.add_argument(
        '--gpu',
        action='store_true',
        help='Use CUDA when available'
    )
    subparsers = parser.add_subparsers(dest='command', required=True)

    layout = subparsers.add_parser('layout', help='Detect document layout elements')
    layout.add_argument('image', type=str, help='Input image path')
    layout_src = layout.add_mutually_exclusive_group(required=True)
    layout_src.add_argument('--model', type=str, help='Layout ONNX model path')
    layout_src.add_argument(
        '--repo', type=str,
        help='Local directory or Hugging Face repo holding layout.onnx'
    )
    layout.add_argument(
        '--threshold', type=float, default=0.5,
        help='Minimum detection score (default: 0.5)'
    )

    ocr = subparsers.add_parser('ocr', help='Detect and recognize text lines')
    ocr.add_argument('image', type=str, help='Input image path')
    ocr.add_argument('--det-model', type=str, help='Detection ONNX model path')
    ocr.add_argument('--rec-model', type=str, help='Recognition ONNX model path')
    ocr.add_argument('--dict', type=str, help='Character dictionary path')
    ocr.add_argument(
        '--repo', type=str,
        help='Local directory or Hugging Face repo holding det.onnx, rec.onnx and dict.txt'
    )
    ocr.add_argument(
        '--det-threshold', type=float, default=0.3,
        help='Binarization threshold (default: 0.3)'
    )
    ocr.add_argument(
        '--rec-threshold', type=float, default=0.5,
        help='Minimum recognition score (default: 0.5)'
    )

    detect = subparsers.add_parser('detect', help='Detect text boxes without recognition')
    detect.add_argument('image', type=str, help='Input image path')
    detect.add_argument('--det-model', type=str, required=True, help='Detection ONNX model path')
    detect.add_argument(
        '--threshold', type=float, default=0.3,
        help='Binarization threshold (default: 0.3)'
    )
    return parser


def run(args) -> str:
    """Execute one sub-command and return its JSON output."""
    if args.command == 'layout':
        config = LayoutConfig(use_gpu=args.gpu)
        if args.repo:
            detector = LayoutDetector.from_pretrained(args.repo, config=config)
        else:
            detector = LayoutDetector(args.model, config)
        return detect_layout_from_path(detector, args.image, conf_threshold=args.threshold)

    if args.command == 'ocr':
        det_config = DetectorConfig(use_gpu=args.gpu)
        rec_config = RecognizerConfig(use_gpu=args.gpu)
        if args.repo:
            engine = OcrEngine.from_pretrained(
                args.repo, det_config=det_config, rec_config=rec_config
            )
        else:
            engine = OcrEngine.from_model_paths(
                args.det_model,
                args.rec_model,
                args.dict,
                det_config=det_config,
                rec_config=rec_config,
            )
        return recognize_text_from_path(
            engine, args.image,
            det_threshold=args.det_threshold,
            rec_threshold=args.rec_threshold,
        )

    detector = TextDetector(args.det_model, DetectorConfig(use_gpu=args.gpu))
    return detect_text_from_path(OcrEngine(detector), args.image, threshold=args.threshold)


def main(argv=None):
    """Main CLI entry point"""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command == 'ocr' and not args.repo and not (
        args.det_model and args.rec_model and args.dict
    ):
        parser.error("ocr needs --repo, or all of --det-model, --rec-model and --dict")

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not Path(args.image).exists():
        print(f"Error: Input file '{args.image}' not found", file=sys.stderr)
        return 1

    try:
        print(run(args))
        return 0
    except KeyboardInterrupt:
        print("\n\nInterrupted by user", file=sys.stderr)
        return 130
    except Exception as e:
        print(f"\nError: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == '__main__':
    sys.exit(main())
