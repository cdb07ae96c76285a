"""
Utility for logging every speech synthesis request to files.
Leaves an audit trail next to the scratch clips for post-mortem inspection.
"""

import os
import json
import threading
from datetime import datetime
from typing import Dict, Optional

from ..config import REQUEST_LOG_DIR
from ..models.schemas import SynthesisRequest


class RequestLogger:
    """Logs synthesis requests and what came back for debugging."""

    def __init__(self, output_dir: str):
        """Initialize logger with output directory."""
        self.output_dir = output_dir
        self.logs_dir = os.path.join(output_dir, REQUEST_LOG_DIR)
        os.makedirs(self.logs_dir, exist_ok=True)
        self.request_count = 0
        self._lock = threading.Lock()

    def log_request(
        self,
        index: int,
        request: SynthesisRequest,
        audio_bytes: Optional[int],
        metadata: Optional[Dict] = None
    ) -> str:
        """
        Log a single synthesis request.

        Args:
            index: Phrase index the request was built for
            request: The request sent to the speech service
            audio_bytes: Size of the returned audio, or None when nothing came back
            metadata: Additional details about the response
        """
        with self._lock:
            self.request_count += 1

        filename = f"{index:03d}_{request.voice_id}.json"
        filepath = os.path.join(self.logs_dir, filename)

        log_entry = {
            "timestamp": datetime.now().isoformat(),
            "index": index,
            "request": request.model_dump(),
            "audio_bytes": audio_bytes,
            "metadata": metadata or {}
        }

        with open(filepath, 'w', encoding='utf-8') as f:
            json.dump(log_entry, f, indent=2, ensure_ascii=False)

        return filepath

    def get_logs_summary(self) -> str:
        """Get a summary of logged requests."""
        return f"Logged {self.request_count} synthesis requests to {self.logs_dir}"
