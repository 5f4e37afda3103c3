"""Operation statistics data structures and presentation utilities.

Every mesh operation (locate, split, split_edge, flip, insert) keeps an
``OpStats`` record in ``Mesh.stats`` keyed by operation name.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Any

@dataclass
class OpStats:
    attempts: int = 0
    success: int = 0
    fail: int = 0
    # Insertion specific extras (stay zero for other ops)
    duplicates: int = 0
    flips: int = 0
    # Point location
    walk_steps: int = 0
    # Timing (seconds)
    time_total: float = 0.0
    time_max: float = 0.0
    time_min: float = 0.0  # 0 means uninitialized

    def record_time(self, duration: float):
        self.time_total += duration
        if duration > self.time_max:
            self.time_max = duration
        if self.time_min == 0.0 or duration < self.time_min:
            self.time_min = duration

    def to_dict(self) -> Dict[str, Any]:
        return {
            'attempts': self.attempts,
            'success': self.success,
            'fail': self.fail,
            'duplicates': self.duplicates,
            'flips': self.flips,
            'walk_steps': self.walk_steps,
            'success_rate': (self.success / self.attempts) if self.attempts else 0.0,
            'avg_walk': (self.walk_steps / self.attempts) if self.attempts else 0.0,
            'time_total': self.time_total,
            'time_max': self.time_max,
            'time_min': self.time_min,
            'time_avg': (self.time_total / self.attempts) if self.attempts else 0.0,
        }

def stats_to_dict(stats) -> Dict[str, Dict[str, Any]]:
    """Map ``{op: OpStats}`` to ``{op: dict}`` for formatting or JSON export."""
    return {op: s.to_dict() for op, s in stats.items()}

def format_stats_table(stats_dict) -> str:
    """Return a human readable multi-line table summarizing op stats."""
    if not stats_dict:
        return "<no stats>"
    header = ["op", "attempts", "succ", "fail", "dups", "flips", "succ%", "avg_ms", "min_ms", "max_ms"]
    rows = []
    for op in sorted(stats_dict.keys()):
        s = stats_dict[op]
        if isinstance(s, OpStats):
            s = s.to_dict()
        attempts = s['attempts']; succ = s['success']; fail = s['fail']
        succ_pct = (succ / attempts * 100.0) if attempts else 0.0
        avg_ms = s['time_avg'] * 1000.0; min_ms = s['time_min'] * 1000.0; max_ms = s['time_max'] * 1000.0
        rows.append([
            op, str(attempts), str(succ), str(fail), str(s['duplicates']), str(s['flips']),
            f"{succ_pct:6.2f}", f"{avg_ms:8.3f}", f"{min_ms:8.3f}", f"{max_ms:8.3f}"
        ])
    col_w = [len(h) for h in header]
    for r in rows:
        for i,v in enumerate(r):
            if len(v) > col_w[i]: col_w[i] = len(v)
    def fmt(r):
        return " ".join(r[i].rjust(col_w[i]) for i in range(len(r)))
    lines = [fmt(header), "-" * (sum(col_w) + len(col_w) - 1)] + [fmt(r) for r in rows]
    return "\n".join(lines)

def print_stats(stats_dict, file=None, pretty=True):  # pragma: no cover - formatting wrapper
    import sys
    out = file or sys.stdout
    if not pretty:
        print(stats_dict, file=out)
        return
    print(format_stats_table(stats_dict), file=out)

__all__ = ["OpStats", "stats_to_dict", "print_stats", "format_stats_table"]
