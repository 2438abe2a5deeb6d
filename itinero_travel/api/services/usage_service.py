# itinero_travel/api/services/usage_service.py
"""Google Maps API usage and cost tracking.

The tracker is handed a store explicitly; nothing is kept in module globals,
so tests and separate app instances never share counters.
"""

import json
import logging
import os
import threading
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Dict, List, Optional

from itinero_travel.api.config import get_usage_config

logger = logging.getLogger(__name__)


@dataclass
class UsageRecord:
    api_type: str
    requests: int
    estimated_cost: float
    timestamp: str  # ISO 8601


@dataclass
class UsageSummary:
    total_cost: float
    breakdown: Dict[str, float]
    percentage: float  # of the free tier
    is_warning: bool
    is_danger: bool

    def to_dict(self) -> dict:
        return asdict(self)


class InMemoryUsageStore:
    """Keeps usage records for the lifetime of the process."""

    def __init__(self):
        self._records: List[UsageRecord] = []
        self.lock = threading.Lock()

    def append(self, record: UsageRecord) -> None:
        with self.lock:
            self._records.append(record)

    def all(self) -> List[UsageRecord]:
        with self.lock:
            return list(self._records)

    def clear(self) -> None:
        with self.lock:
            self._records.clear()


class JsonFileUsageStore(InMemoryUsageStore):
    """Persists usage records to a JSON file after every change."""

    def __init__(self, path: str):
        super().__init__()
        self.path = path
        self._load()

    def _load(self) -> None:
        try:
            with open(self.path, "r") as f:
                raw = json.load(f)
        except FileNotFoundError:
            return
        except json.JSONDecodeError as e:
            logger.error(f"Ignoring unreadable usage file {self.path}: {e}")
            return

        self._records = [UsageRecord(**item) for item in raw]
        logger.debug(f"Loaded {len(self._records)} usage records from {self.path}")

    def _save(self) -> None:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump([asdict(r) for r in self._records], f, indent=2)

    def append(self, record: UsageRecord) -> None:
        with self.lock:
            self._records.append(record)
            self._save()

    def clear(self) -> None:
        with self.lock:
            self._records.clear()
            self._save()


class UsageTracker:
    """Records Maps API calls and summarizes the month against the free tier."""

    def __init__(self, store=None, costs: Optional[Dict[str, float]] = None,
                 free_tier_limit: Optional[float] = None,
                 warning_percent: Optional[float] = None,
                 danger_percent: Optional[float] = None):
        config = get_usage_config()
        self.store = store if store is not None else InMemoryUsageStore()
        self.costs = costs or config["costs"]
        self.free_tier_limit = free_tier_limit or config["free_tier_limit"]
        self.warning_percent = warning_percent or config["warning_percent"]
        self.danger_percent = danger_percent or config["danger_percent"]

    def calculate_cost(self, api_type: str, count: int) -> float:
        """Estimated USD cost of ``count`` requests of ``api_type``."""
        if api_type not in self.costs:
            raise ValueError(f"Unknown API type '{api_type}'. Must be one of: {', '.join(self.costs)}")
        return (count / 1000) * self.costs[api_type]

    def track(self, api_type: str, count: int = 1,
              now: Optional[datetime] = None) -> UsageRecord:
        """Record ``count`` requests and alert if the month crosses a threshold."""
        if count < 0:
            raise ValueError("Request count must not be negative")

        record = UsageRecord(
            api_type=api_type,
            requests=count,
            estimated_cost=self.calculate_cost(api_type, count),
            timestamp=(now or datetime.now()).isoformat(),
        )
        self.store.append(record)
        self.check_and_alert(now)
        return record

    def summary(self, now: Optional[datetime] = None) -> UsageSummary:
        """Summarize usage for the calendar month containing ``now``."""
        now = now or datetime.now()
        current = [
            r for r in self.store.all()
            if _same_month(datetime.fromisoformat(r.timestamp), now)
        ]

        breakdown = {api_type: 0.0 for api_type in self.costs}
        for record in current:
            breakdown[record.api_type] = breakdown.get(record.api_type, 0.0) + record.estimated_cost

        total = sum(breakdown.values())
        percentage = (total / self.free_tier_limit) * 100 if self.free_tier_limit else 0.0

        return UsageSummary(
            total_cost=total,
            breakdown=breakdown,
            percentage=percentage,
            is_warning=percentage >= self.warning_percent,
            is_danger=percentage >= self.danger_percent,
        )

    def check_and_alert(self, now: Optional[datetime] = None) -> Optional[str]:
        """Log a warning or critical message when usage is high.

        Returns:
            The alert level ("warning" / "danger") or None
        """
        summary = self.summary(now)
        usage = (f"{summary.percentage:.1f}% of the free Google Maps API tier "
                 f"(${summary.total_cost:.2f}/${self.free_tier_limit:.0f})")

        if summary.is_danger:
            logger.error(f"CRITICAL: used {usage}")
            return "danger"
        if summary.is_warning:
            logger.warning(f"Used {usage}")
            return "warning"
        return None

    def reset(self) -> None:
        self.store.clear()
        logger.info("API usage data reset")

    def export(self) -> str:
        """Return all usage records as a JSON document."""
        return json.dumps([asdict(r) for r in self.store.all()], indent=2)


def _same_month(a: datetime, b: datetime) -> bool:
    return a.year == b.year and a.month == b.month


def create_usage_tracker() -> UsageTracker:
    """Create a tracker backed by the configured store."""
    path = get_usage_config()["store_path"]
    store = JsonFileUsageStore(path) if path else InMemoryUsageStore()
    return UsageTracker(store)


__all__ = [
    "UsageRecord",
    "UsageSummary",
    "InMemoryUsageStore",
    "JsonFileUsageStore",
    "UsageTracker",
    "create_usage_tracker",
]
