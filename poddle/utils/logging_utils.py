"""
Logging utilities for run tracking and speech cost estimation.
"""

import json
import os
import sys
import threading
from datetime import datetime
from typing import List, Optional
import uuid

from ..config import POLLY_PRICING, RUN_LOG_FILE
from ..models.schemas import StageMetrics, RunLog


class LoggingManager:
    """Manages console output and cost tracking for a podcast run."""

    def __init__(self, run_id: str = None, source_file: str = None, quiet: bool = False):
        self.run_id = run_id or str(uuid.uuid4())
        self.source_file = source_file or "unknown"
        self.quiet = quiet
        self.title: Optional[str] = None
        self.output_path: Optional[str] = None
        self.stage_metrics: List[StageMetrics] = []
        self.start_time: Optional[datetime] = None
        self.end_time: Optional[datetime] = None
        self._lock = threading.Lock()  # synthesis calls report from executor threads

    def _calculate_cost(self, characters: int, engine: Optional[str]) -> float:
        """Calculate cost for the billed characters on an engine."""
        if engine not in POLLY_PRICING:
            return 0.0
        return round(characters * POLLY_PRICING[engine], 6)

    def log_stage_metrics(
        self,
        stage_name: str,
        execution_time: float = None,
        characters: int = 0,
        voice_id: str = None,
        engine: str = None
    ) -> None:
        """Log metrics for a pipeline stage."""
        if execution_time is None:
            execution_time = 0.0

        stage_metric = StageMetrics(
            stage_name=stage_name,
            execution_time_seconds=execution_time,
            characters_billed=characters,
            cost_usd=self._calculate_cost(characters, engine),
            voice_id=voice_id,
            engine=engine
        )

        with self._lock:
            now = datetime.now()
            if self.start_time is None:
                self.start_time = now
            self.end_time = now
            self.stage_metrics.append(stage_metric)

    def get_total_cost(self) -> float:
        """Calculate total cost across all stages."""
        return sum(stage.cost_usd for stage in self.stage_metrics)

    def get_total_characters(self) -> int:
        return sum(stage.characters_billed for stage in self.stage_metrics)

    def get_category_execution_time(self, category_keywords: List[str]) -> float:
        """Calculate execution time for stages matching category keywords."""
        total_time = 0.0
        for stage in self.stage_metrics:
            if any(keyword in stage.stage_name.lower() for keyword in category_keywords):
                total_time += stage.execution_time_seconds
        return total_time

    def get_total_execution_time(self) -> float:
        """Total wall time. Per-phrase calls overlap inside synthesis_batch, so they are skipped."""
        return sum(
            stage.execution_time_seconds
            for stage in self.stage_metrics
            if not stage.stage_name.startswith("tts_phrase_")
        )

    def create_run_log(self, status: str = "completed", error_message: str = None) -> RunLog:
        """Create a complete run log."""
        return RunLog(
            run_id=self.run_id,
            source_file=self.source_file,
            title=self.title,
            start_time=self.start_time or datetime.now(),
            end_time=self.end_time or datetime.now(),
            total_execution_time_seconds=self.get_total_execution_time(),
            stage_metrics=self.stage_metrics,
            total_characters=self.get_total_characters(),
            total_cost_usd=self.get_total_cost(),
            status=status,
            error_message=error_message,
            output_path=self.output_path
        )

    def save_run_log(self, output_directory: str, status: str = "completed", error_message: str = None) -> str:
        """Save run log to file."""
        log = self.create_run_log(status, error_message)
        log_path = os.path.join(output_directory, RUN_LOG_FILE)

        os.makedirs(output_directory, exist_ok=True)

        with open(log_path, 'w', encoding='utf-8') as f:
            json.dump(log.model_dump(), f, indent=2, default=str)

        return log_path

    def print_summary(self) -> None:
        """Print a summary of the run."""
        if self.quiet:
            return
        total_time = self.get_total_execution_time()
        phrase_stages = [s for s in self.stage_metrics if s.stage_name.startswith("tts_phrase_")]

        print(f"\n=== Run Summary ===")
        print(f"Run ID: {self.run_id}")
        print(f"Source: {self.source_file}")
        print(f"Phrases synthesized: {len(phrase_stages)}")
        print(f"Characters billed: {self.get_total_characters()}")
        print(f"Estimated cost: ${self.get_total_cost():.6f}")
        print(f"Total Time: {total_time:.2f} seconds")

        print(f"\n--- Timing Breakdown ---")
        synthesis_time = self.get_category_execution_time(["synthesis_batch"])
        mux_time = self.get_category_execution_time(["mux"])
        if total_time > 0:
            print(f"Synthesis: {synthesis_time:.2f}s ({synthesis_time/total_time*100:.1f}%)")
            print(f"Stitching: {mux_time:.2f}s ({mux_time/total_time*100:.1f}%)")
            other_time = total_time - synthesis_time - mux_time
            if other_time > 0:
                print(f"Other Operations: {other_time:.2f}s ({other_time/total_time*100:.1f}%)")
        if phrase_stages:
            slowest = max(phrase_stages, key=lambda s: s.execution_time_seconds)
            print(f"slowest phrase: {slowest.stage_name} ({slowest.execution_time_seconds:.2f}s)")

    def log_info(self, message: str) -> None:
        """Log an info message."""
        if not self.quiet:
            print(f"ℹ️  {message}")

    def log_step(self, message: str) -> None:
        if not self.quiet:
            print(f"  → {message}")

    def log_success(self, message: str) -> None:
        if not self.quiet:
            print(f"  ✓ {message}")

    def log_warning(self, message: str) -> None:
        """Log a warning message."""
        print(f"⚠️  {message}", file=sys.stderr)

    def log_error(self, message: str) -> None:
        """Log an error message."""
        print(f"❌ {message}", file=sys.stderr)
