import json
import logging
import os
import threading
from typing import List

from docbrain.config import METRICS_PATH

logger = logging.getLogger(__name__)

_lock = threading.Lock()

# Latency samples kept for percentile calculation
_MAX_LATENCY_SAMPLES = 1000


class MetricsTracker:

    def __init__(self, path: str = METRICS_PATH):

        self._path = path

        self._metrics = self._empty()

        self._load()

    @staticmethod
    def _empty() -> dict:

        return {

            "total_requests": 0,
            "successful_requests": 0,
            "failed_requests": 0,

            "total_latency": 0.0,
            "avg_latency": 0.0,
            "latencies": [],

            # query pipeline
            "queries_by_mode": {},
            "relevance_calls": 0,
            "documents_skipped": 0,
            "model_fallbacks": 0,
            "short_circuits": 0,

        }

    def _load(self):

        if not os.path.exists(self._path):
            return

        try:

            with open(self._path, "r") as f:
                data = json.load(f)

            # Backward compatibility: keep defaults for missing keys
            self._metrics.update(data)

        except (OSError, ValueError) as e:

            logger.warning(
                "Metrics load failed",
                extra={"error": str(e)},
            )

    def _save(self):

        try:

            directory = os.path.dirname(self._path)

            if directory:
                os.makedirs(directory, exist_ok=True)

            with open(self._path, "w") as f:
                json.dump(self._metrics, f, indent=2)

        except OSError as e:

            logger.warning(
                "Metrics save failed",
                extra={"error": str(e)},
            )

    def record_success(self, latency: float):

        with _lock:

            self._metrics["total_requests"] += 1

            self._metrics["successful_requests"] += 1

            self._metrics["total_latency"] += latency

            self._metrics["avg_latency"] = (
                self._metrics["total_latency"]
                / self._metrics["successful_requests"]
            )

            self._metrics["latencies"].append(latency)
            del self._metrics["latencies"][:-_MAX_LATENCY_SAMPLES]

            self._save()

    def record_failure(self):

        with _lock:

            self._metrics["total_requests"] += 1

            self._metrics["failed_requests"] += 1

            self._save()

    def record_query(self, stats):
        """Accumulate counters from one pipeline run (PipelineStats)."""

        with _lock:

            by_mode = self._metrics["queries_by_mode"]
            by_mode[stats.mode] = by_mode.get(stats.mode, 0) + 1

            self._metrics["relevance_calls"] += stats.relevance_calls
            self._metrics["documents_skipped"] += stats.documents_skipped

            if stats.model_failed:
                self._metrics["model_fallbacks"] += 1

            if stats.short_circuited:
                self._metrics["short_circuits"] += 1

            self._save()

    def get_metrics(self) -> dict:

        with _lock:
            metrics = dict(self._metrics)
            metrics["latencies"] = list(self._metrics["latencies"])
            metrics["queries_by_mode"] = dict(self._metrics["queries_by_mode"])

        metrics["p95_latency"] = _percentile(metrics["latencies"], 95)

        return metrics

    def get_latency_percentile(self, percentile: float) -> float:

        with _lock:
            latencies = list(self._metrics.get("latencies", []))

        return _percentile(latencies, percentile)


def _percentile(latencies: List[float], percentile: float) -> float:

    if not latencies:
        return 0.0

    sorted_latencies = sorted(latencies)

    index = int(len(sorted_latencies) * percentile / 100)

    index = min(index, len(sorted_latencies) - 1)

    return sorted_latencies[index]


metrics_tracker = MetricsTracker()
