"""
PipelineLogger: Structured JSON logging for background replacement pipeline
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

DEFAULT_LOG_FILE = Path.home() / ".local/share/portraitbg/debug.log"

STAGE_NAMES: tuple[str, ...] = (
    "s1_background_estimation",
    "s2_foreground_classification",
    "s3_largest_component",
    "s4_morphology",
    "s5_feathering",
    "s6_compositing",
)


class PipelineLogger:
    """Logger with per-image JSON stage records and debug modes"""

    def __init__(
        self,
        log_file: Optional[Path] = None,
        debug_mode: bool = False,
        verbose: bool = False,
    ):
        self.log_file = Path(log_file).expanduser() if log_file is not None else None
        self.debug_mode = debug_mode
        self.verbose = verbose
        self.current_image: Optional[Dict[str, Any]] = None
        self.logs: list[Dict[str, Any]] = []

        if self.log_file is not None:
            self.log_file.parent.mkdir(parents=True, exist_ok=True)

        self.logger = logging.getLogger("portraitbg.pipeline")
        self.logger.setLevel(logging.DEBUG if debug_mode else logging.INFO)

    def start_image(self, label: Any):
        """Start logging for a new image"""
        self.current_image = {
            "image": str(label),
            "timestamp": datetime.now().isoformat(),
            "stages": [],
        }

    def log_stage(self, stage_name: str, **data: Any):
        """Record the outcome of one pipeline stage"""
        if stage_name not in STAGE_NAMES:
            raise ValueError(f"Unknown stage: {stage_name}")
        if self.current_image is None:
            raise RuntimeError("Must call start_image() before logging stages")

        stage_log = {
            "stage": stage_name,
            "timestamp": datetime.now().isoformat(),
            **data,
        }
        self.current_image["stages"].append(stage_log)

        self.logger.debug("[%s] %s", stage_name, json.dumps(data, default=str))
        if self.debug_mode:
            print(f"[{stage_name}] {json.dumps(data, indent=2, default=str)}")

    def log_info(self, message: str):
        """Log info message"""
        self.logger.info(message)
        if self.verbose:
            print(f"INFO: {message}")

    def log_warning(self, message: str):
        """Log warning message"""
        self.logger.warning(message)
        if self.current_image is not None:
            self.current_image.setdefault("warnings", []).append(message)
        print(f"WARNING: {message}")

    def log_error(self, message: str, exc_info: bool = False):
        """Log error message"""
        self.logger.error(message, exc_info=exc_info)
        print(f"ERROR: {message}")

    def save_image_log(self):
        """Close the current image record and append it to the log file"""
        if self.current_image is None:
            return

        self.logs.append(self.current_image)

        if self.log_file is not None:
            with open(self.log_file, "a") as f:
                json.dump(self.current_image, f, default=str)
                f.write("\n")

        self.current_image = None
