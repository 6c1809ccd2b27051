"""
Unit normalization helpers.

Every backend reports resources in its own units: Proxmox uses CPU ratios
and bytes, Kubernetes uses resource quantities ("250m", "512Mi"), OpenStack
uses MB and GB. These helpers convert all of them to cores and bytes and
build ResourceMetric values with a consistent percentage.
"""

import math
import re
from typing import List, Optional, Union

from infra_monitor.models.infrastructure.metrics import ResourceMetric

MB = 1024 ** 2
GB = 1024 ** 3

_QUANTITY_RE = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)\s*([A-Za-z]*)\s*$")

# Longest suffixes first so that "Mi" wins over "M"
_MEMORY_MULTIPLIERS = {
    "Ki": 1024,
    "Mi": 1024 ** 2,
    "Gi": 1024 ** 3,
    "Ti": 1024 ** 4,
    "Pi": 1024 ** 5,
    "Ei": 1024 ** 6,
    "k": 1000,
    "K": 1000,
    "M": 1000 ** 2,
    "G": 1000 ** 3,
    "T": 1000 ** 4,
    "P": 1000 ** 5,
    "E": 1000 ** 6,
    "m": 1e-3,
    "": 1,
}

_CPU_MULTIPLIERS = {
    "n": 1e-9,
    "u": 1e-6,
    "m": 1e-3,
    "": 1,
}

_NATURAL_SPLIT_RE = re.compile(r"(\d+)")


def create_resource_metric(used: float, total: float) -> ResourceMetric:
    """
    Build a ResourceMetric from a used/total pair.

    Args:
        used: Used amount in base units
        total: Total amount in base units

    Returns:
        ResourceMetric whose percentage is used/total*100, or 0 when total is not positive
    """
    used = float(used or 0)
    total = float(total or 0)
    percentage = (used / total) * 100 if total > 0 else 0.0
    return ResourceMetric(used=used, total=total, percentage=percentage)


def _split_quantity(value: Union[str, int, float, None]):
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value), ""
    match = _QUANTITY_RE.match(str(value))
    if not match:
        return None
    return float(match.group(1)), match.group(2)


def parse_cpu_quantity(value: Union[str, int, float, None]) -> float:
    """
    Convert a Kubernetes CPU quantity to cores.

    "250m" -> 0.25, "2" -> 2.0, "1500000n" -> 0.0015. Unparseable or
    missing values yield 0.
    """
    parsed = _split_quantity(value)
    if parsed is None:
        return 0.0
    number, suffix = parsed
    multiplier = _CPU_MULTIPLIERS.get(suffix)
    if multiplier is None:
        return 0.0
    return number * multiplier


def parse_memory_quantity(value: Union[str, int, float, None]) -> float:
    """
    Convert a Kubernetes memory quantity to bytes.

    Binary suffixes (Ki, Mi, Gi, ...) are powers of 1024, decimal suffixes
    (k, M, G, ...) powers of 1000. A bare number is already in bytes.
    Unparseable or missing values yield 0.
    """
    parsed = _split_quantity(value)
    if parsed is None:
        return 0.0
    number, suffix = parsed
    multiplier = _MEMORY_MULTIPLIERS.get(suffix)
    if multiplier is None:
        return 0.0
    return number * multiplier


def mb_to_bytes(value: Optional[float]) -> float:
    return float(value or 0) * MB


def gb_to_bytes(value: Optional[float]) -> float:
    return float(value or 0) * GB


def ratio_to_cores(ratio: Optional[float], cores: Optional[float]) -> float:
    """Convert a 0..1 CPU utilization ratio into busy cores."""
    return float(ratio or 0) * float(cores or 0)


def cpu_count_from_cores(cores: float) -> int:
    """Round a fractional core allocation up to a whole vCPU count, at least 1."""
    count = math.ceil(cores) if cores > 0 else 0
    return count or 1


def natural_sort_key(name: str) -> List[Union[int, str]]:
    """
    Sort key that orders embedded numbers numerically.

    natural_sort_key("node-2") < natural_sort_key("node-10")
    """
    parts = _NATURAL_SPLIT_RE.split(name or "")
    key: List[Union[int, str]] = []
    for part in parts:
        if part.isdigit():
            key.append(int(part))
        else:
            key.append(part.lower())
    return key
