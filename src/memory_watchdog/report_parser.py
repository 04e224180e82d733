"""
Parsing of pod memory reports into a total in Mi
"""

import logging
import re

from kubernetes.utils import parse_quantity

logger = logging.getLogger(__name__)

MEMORY_COLUMN = 2
MEMORY_UNIT = "Mi"
MEBIBYTE = 1024 * 1024

_MAGNITUDE = re.compile(r"^\+?[0-9]+$")


def parse_total_memory(report: str) -> int:
    """
    Sum the memory column of a `kubectl top pods` style report.

    The first line is a header and is always skipped. Every other line
    with more than two whitespace separated fields contributes its third
    field with the "Mi" suffix stripped. Rows whose value does not convert
    to a whole number contribute nothing.
    """
    total = 0
    for line in report.split("\n")[1:]:
        fields = line.split()
        if len(fields) <= MEMORY_COLUMN:
            continue
        magnitude = fields[MEMORY_COLUMN].replace(MEMORY_UNIT, "")
        if not _MAGNITUDE.match(magnitude):
            logger.debug(f"Skipping unparseable memory value {fields[MEMORY_COLUMN]!r}")
            continue
        total += int(magnitude)
    return total


def parse_quantity_mi(quantity: str) -> int:
    """Convert a Kubernetes quantity such as "2048Ki" or "1Gi" to whole Mi"""
    value = parse_quantity(quantity)
    if value < 0:
        raise ValueError(f"negative memory quantity {quantity!r}")
    return int(value // MEBIBYTE)
