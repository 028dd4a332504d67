"""
CLI entry point for courtspeed.

    python main.py calibrate --points clicks.json --output calibration.json
    python main.py analyse   --input landmarks.json --calibration calibration.json
"""
import argparse
import json
import logging
import sys
from pathlib import Path

from courtspeed import (
    AnalysisOptions, CalibrationError, CalibrationSession, HomographyEstimator, Pipeline,
    Point2D, save_calibration,
)
from courtspeed import config


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Court calibration and centre-of-mass speed analysis",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Debug logging"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    # ── calibrate ─────────────────────────────────────────────────────────────
    cal = sub.add_parser(
        "calibrate",
        help="Fit and confirm a court calibration from clicked points",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    cal.add_argument(
        "--points", "-p",
        required=True,
        help="JSON with court_type, mode, image_size and points [{id, x, y}]"
    )
    cal.add_argument(
        "--output", "-o",
        default=str(Path(config.RESULTS_DIR) / "calibration.json"),
        help="Where to save the calibration"
    )
    cal.add_argument(
        "--seed",
        type=int,
        default=None,
        help="RANSAC seed for reproducible fits"
    )

    # ── analyse ───────────────────────────────────────────────────────────────
    ana = sub.add_parser(
        "analyse",
        help="Compute per-frame speed from a pose landmark sequence",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    ana.add_argument(
        "--input", "-i",
        required=True,
        help="Landmark sequence JSON"
    )
    ana.add_argument(
        "--calibration", "-c",
        default=None,
        help="Saved court calibration (enables court scaling and the heatmap)"
    )
    ana.add_argument(
        "--options",
        default=None,
        help="AnalysisOptions JSON file"
    )
    ana.add_argument(
        "--height",
        type=float,
        default=None,
        help="Player height in cm (enables height calibration)"
    )
    ana.add_argument(
        "--output", "-o",
        default=str(config.RESULTS_DIR),
        help="Output directory for results"
    )
    ana.add_argument(
        "--name", "-n",
        default=None,
        help="Base name for output files (default: input filename)"
    )
    ana.add_argument(
        "--skip", "-s",
        type=int,
        default=0,
        help="Frames to skip between processed frames (0 = process all)"
    )
    ana.add_argument(
        "--max-frames", "-m",
        type=int,
        default=None,
        help="Maximum frames to process (default: all)"
    )
    ana.add_argument(
        "--no-json",
        action="store_true",
        help="Don't save JSON results"
    )
    ana.add_argument(
        "--no-heatmap",
        action="store_true",
        help="Don't save the heatmap image"
    )
    ana.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Suppress progress bar"
    )
    return parser.parse_args(argv)


def run_calibrate(args) -> int:
    with open(args.points) as f:
        data = json.load(f)

    size = data.get("image_size")
    session = CalibrationSession(
        court_type=data.get("court_type", config.DEFAULT_COURT_TYPE),
        mode_id=data.get("mode", config.DEFAULT_CALIBRATION_MODE),
        estimator=HomographyEstimator(seed=args.seed),
        image_size=tuple(size) if size else None,
    )
    for p in data.get("points", []):
        outcome = session.add_point(p["id"], Point2D(float(p["x"]), float(p["y"])),
                                    float(p.get("confidence", 1.0)))
        if not outcome:
            print(f"[Calibrate] {p['id']}: {outcome.error.message}")

    outcome = session.calibrate()
    if not outcome:
        print(f"[Calibrate] Failed: {outcome.error.message}")
        return 1
    session.confirm()

    result, quality = session.confirmed_result, session.quality
    print(f"[Calibrate] {session.court_type} / {session.mode.name}: "
          f"{len(session.collected_points)} points")
    print(f"  Reprojection error: {result.reprojection_error * 100:.2f} cm")
    print(f"  Confidence:         {result.confidence:.1%}")
    print(f"  Inliers:            {len(result.inlier_indices)}/{len(session.collected_points)}")
    print(f"  Quality:            {quality.grade} ({quality.overall_confidence:.2f})")
    for rec in quality.recommendations:
        print(f"    - {rec}")
    path = save_calibration(session, args.output)
    print(f"[Calibrate] Saved → {path}")
    return 0


def run_analyse(args) -> int:
    input_path = Path(args.input)
    if not input_path.exists():
        print(f"Error: Input file not found: {args.input}")
        return 1

    options = AnalysisOptions.load(args.options) if args.options else AnalysisOptions()
    if args.height is not None:
        overrides = options.to_dict()
        overrides.update(player_height=args.height, use_height_calibration=True)
        options = AnalysisOptions.from_mapping(overrides)

    pipeline = Pipeline(
        options=options,
        calibration_path=args.calibration,
        output_dir=args.output,
        save_json=not args.no_json,
        save_heatmap=not args.no_heatmap,
        show_progress=not args.quiet,
    )

    print(f"Processing: {args.input}")
    print(f"Output directory: {args.output}")
    result = pipeline.process(
        input_path,
        max_frames=args.max_frames,
        skip=args.skip,
        output_name=args.name,
    )

    summary = result.summary()
    print("\n--- Processing Complete ---")
    print(f"Frames processed:    {summary['frames']}")
    print(f"Valid frames:        {summary['valid_frames']}")
    for reason, count in summary["invalid_reasons"].items():
        print(f"  {reason}: {count}")
    print(f"Max speed:           {summary['max_speed']:.2f}")
    print(f"Average speed:       {summary['average_speed']:.2f}")
    print(f"Clamped frames:      {summary['clamped_frames']}")
    print(f"Calibration accuracy: {result.settings.calibration_accuracy:.0f}%")
    if result.heatmap is not None:
        hm = result.heatmap.summary()
        print(f"Distance covered:    {hm['total_distance_m']:.1f} m "
              f"(most time in {hm['most_visited_zone']})")
    return 0


def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        if args.command == "calibrate":
            code = run_calibrate(args)
        else:
            code = run_analyse(args)
    except KeyboardInterrupt:
        print("\nProcessing interrupted by user.")
        code = 0
    except (OSError, ValueError, CalibrationError) as e:
        print(f"Error: {e}")
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()
