import threading
import time
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class ToolMetric:
    name: str
    count: int = 0
    success: int = 0
    error: int = 0
    timeout: int = 0
    total_ms: float = 0.0
    last_ms: Optional[float] = None
    last_status: Optional[str] = None
    last_error: Optional[str] = None
    last_invoked_at: Optional[float] = None


@dataclass
class Invocation:
    tool: str
    started_at: float
    duration_ms: Optional[float] = None
    status: Optional[str] = None
    error: Optional[str] = None


@dataclass
class _Timer:
    metric: ToolMetric
    invocation: Invocation
    started: float = field(default_factory=time.perf_counter)

    def elapsed_ms(self) -> float:
        return round((time.perf_counter() - self.started) * 1000, 3)


class ToolMetrics:
    """In-memory per-tool invocation counters plus a log of the current batch."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._metrics: Dict[str, ToolMetric] = {}
        self._invocations: List[Invocation] = []

    def start(self, tool: str) -> _Timer:
        now = time.time()
        invocation = Invocation(tool=tool, started_at=now)
        with self._lock:
            metric = self._metrics.setdefault(tool, ToolMetric(name=tool))
            metric.count += 1
            metric.last_invoked_at = now
            self._invocations.append(invocation)
        return _Timer(metric=metric, invocation=invocation)

    def succeed(self, timer: _Timer) -> None:
        self._finish(timer, "success")

    def fail(self, timer: _Timer, error: BaseException) -> None:
        status = "timeout" if isinstance(error, TimeoutError) else "error"
        self._finish(timer, status, str(error))

    def _finish(self, timer: _Timer, status: str, error: Optional[str] = None) -> None:
        duration = timer.elapsed_ms()
        with self._lock:
            metric = timer.metric
            metric.total_ms += duration
            metric.last_ms = duration
            metric.last_status = status
            if status == "success":
                metric.success += 1
            elif status == "timeout":
                metric.timeout += 1
            else:
                metric.error += 1
                metric.last_error = error
            timer.invocation.duration_ms = duration
            timer.invocation.status = status
            timer.invocation.error = error

    def reset_invocations(self) -> None:
        with self._lock:
            self._invocations = []

    def clear(self) -> None:
        with self._lock:
            self._metrics.clear()
            self._invocations = []

    def snapshot(self, include_invocations: bool = False) -> Dict[str, Any]:
        with self._lock:
            rows = []
            for metric in self._metrics.values():
                row = asdict(metric)
                row["avg_ms"] = round(metric.total_ms / metric.count) if metric.count else 0
                row["success_rate"] = round(metric.success / metric.count * 100, 1) if metric.count else 0
                rows.append(row)
            invocations = [asdict(item) for item in self._invocations] if include_invocations else None
        rows.sort(key=lambda row: row["last_invoked_at"] or 0, reverse=True)
        return {"metrics": rows, "invocations": invocations}


TOOL_METRICS = ToolMetrics()
