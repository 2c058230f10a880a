import time
from contextlib import contextmanager
from typing import Dict, Any
import logging
import numpy as np
import psutil
import os
from datetime import datetime
from collections import defaultdict


logger = logging.getLogger(__name__)

class PerformanceMonitor:
    """
    Times the stages of a conversion run.

    Features:
    - Operation timing with context managers
    - Memory usage tracking
    """

    def __init__(self, track_memory: bool = True):
        """
        Initialize the performance monitor.

        Args:
            track_memory: Whether to track resident memory of this process
        """
        self.metrics = defaultdict(dict)
        self.current_operation = None
        self.track_memory = track_memory
        self.process = psutil.Process(os.getpid())

    def _get_memory_usage(self) -> float:
        """Get current resident memory in MB"""
        return self.process.memory_info().rss / (1024 ** 2)

    @contextmanager
    def track(self, operation_name: str):
        """
        Context manager for timing operations.

        Args:
            operation_name: Name of the operation being tracked

        Example:
            with monitor.track("read"):
                reader.read(path)
        """
        prev_operation = self.current_operation
        self.current_operation = operation_name

        start_time = time.perf_counter()
        start_memory = self._get_memory_usage() if self.track_memory else None

        try:
            yield

        except Exception as e:
            logger.error(f"Operation {operation_name} failed: {str(e)}")
            raise

        finally:
            duration = time.perf_counter() - start_time

            self.metrics[operation_name]['duration_sec'] = duration
            self.metrics[operation_name]['timestamp'] = datetime.now().isoformat()
            if self.track_memory:
                self.metrics[operation_name]['memory_delta_mb'] = self._get_memory_usage() - start_memory

            logger.info(
                f"Operation '{operation_name}' completed in {duration:.3f}s | "
                f"Memory: {self.metrics[operation_name].get('memory_delta_mb', 0):+.1f}MB"
            )

            self.current_operation = prev_operation

    def _generate_summary(self) -> Dict[str, Any]:
        """Generate summary statistics from collected metrics"""
        if not self.metrics:
            return {}

        durations = [op['duration_sec'] for op in self.metrics.values()]
        return {
            'total_operations': len(self.metrics),
            'total_time_sec': float(np.sum(durations)),
            'avg_time_sec': float(np.mean(durations)),
            'max_time_sec': float(np.max(durations)),
            'operations_by_duration': sorted(
                self.metrics.keys(),
                key=lambda k: self.metrics[k]['duration_sec'],
                reverse=True
            )
        }

    def log_summary(self) -> None:
        """Log a summary of performance metrics"""
        summary = self._generate_summary()
        if not summary:
            logger.info("No performance metrics collected yet")
            return

        logger.info(
            f"Performance: {summary['total_operations']} operations in {summary['total_time_sec']:.2f}s, "
            f"longest {summary['max_time_sec']:.2f}s ({summary['operations_by_duration'][0]})"
        )
