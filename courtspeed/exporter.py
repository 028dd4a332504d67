"""
Export speed analysis results.
"""
import json
import cv2
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Tuple

from .stats.heatmap import PositionHeatmap
from . import config

if TYPE_CHECKING:
    from .pipeline import AnalysisResult


class Exporter:
    """Writes analysis results to JSON and the position heatmap to PNG."""

    def __init__(self, output_dir: str = config.RESULTS_DIR):
        """
        Args:
            output_dir: Directory for output files (created if missing)
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def export_json(
        self,
        result: "AnalysisResult",
        filename: str = "speed_results.json",
    ) -> Path:
        """
        Export per-frame metrics plus summary to a JSON file.

        Returns:
            Path to saved file
        """
        output_path = self.output_dir / filename
        with open(output_path, "w") as f:
            json.dump(result.to_dict(), f, indent=2)
        return output_path

    def export_summary(
        self,
        result: "AnalysisResult",
        filename: str = "speed_summary.json",
    ) -> Path:
        summary = {
            "input":   result.metadata.to_dict(),
            "summary": result.summary(),
            "heatmap": result.heatmap.summary() if result.heatmap else None,
            "calibration_accuracy": result.settings.calibration_accuracy,
        }
        output_path = self.output_dir / filename
        with open(output_path, "w") as f:
            json.dump(summary, f, indent=2)
        return output_path

    def export_heatmap(
        self,
        heatmap: PositionHeatmap,
        filename: str = "heatmap.png",
        size: Optional[Tuple[int, int]] = None,
    ) -> Path:
        """Save the coloured heatmap; `size` is (width, height), default 40 px/cell."""
        if size is None:
            rows, cols = heatmap.shape
            size = (cols * 40, rows * 40)
        output_path = self.output_dir / filename
        if not cv2.imwrite(str(output_path), heatmap.to_image(size)):
            raise IOError(f"Could not write heatmap image: {output_path}")
        return output_path
