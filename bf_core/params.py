"""Parameter sizing for Bloom filters.

A filter is described by three integers: the bit-array length ``m``, the
expected number of elements ``n`` and the number of hash functions ``k``.
They can be given directly or derived from a bits-per-element ratio or a
target false-positive rate. Whatever the input mode, the result is a fully
resolved :class:`FilterConfig`.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional, Union

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

LN2 = math.log(2.0)


class SizingMode(Enum):
    """Supported ways of describing a filter's capacity."""

    EXPLICIT = "explicit"  # size + expected_elements [+ num_hashes]
    RATIO = "ratio"  # bits_per_element + expected_elements + num_hashes
    TARGET_RATE = "target_rate"  # false_positive_rate + expected_elements


_REQUIRED = {
    SizingMode.EXPLICIT: frozenset({"size", "expected_elements"}),
    SizingMode.RATIO: frozenset({"bits_per_element", "expected_elements", "num_hashes"}),
    SizingMode.TARGET_RATE: frozenset({"false_positive_rate", "expected_elements"}),
}

_OPTIONAL = {
    SizingMode.EXPLICIT: frozenset({"num_hashes"}),
    SizingMode.RATIO: frozenset(),
    SizingMode.TARGET_RATE: frozenset(),
}


def _check_count(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"{name} must be an integer, got {value!r}")
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value}")
    return value


def optimal_num_hashes(size: int, expected_elements: int) -> int:
    """Return ``round((m / n) * ln 2)``, never less than 1."""
    return max(1, int(round((size / expected_elements) * LN2)))


def false_positive_probability(size: int, num_hashes: int, elements: float) -> float:
    """Probability of a false positive after ``elements`` insertions.

    Uses the classic approximation ``(1 - e^(-k * n / m)) ^ k``.

    Raises:
        ConfigurationError: If ``elements`` is negative.
    """
    if isinstance(elements, bool) or not elements >= 0:
        raise ConfigurationError(f"number of elements must be non-negative, got {elements!r}")
    return math.pow(1.0 - math.exp(-num_hashes * float(elements) / float(size)), num_hashes)


@dataclass(frozen=True)
class FilterConfig:
    """Immutable, fully resolved filter dimensions.

    ``bits_per_element`` and ``false_positive_rate`` only record how the
    config was derived; they take no part in equality.
    """

    size: int
    expected_elements: int
    num_hashes: int
    bits_per_element: Optional[float] = field(default=None, compare=False)
    false_positive_rate: Optional[float] = field(default=None, compare=False)

    def __post_init__(self) -> None:
        _check_count("size", self.size)
        _check_count("expected_elements", self.expected_elements)
        _check_count("num_hashes", self.num_hashes)

    @classmethod
    def resolve(cls, mode: Union[SizingMode, str], **params: Any) -> "FilterConfig":
        """Alias for :func:`resolve_config`."""
        return resolve_config(mode, **params)

    @classmethod
    def from_sizes(
        cls, size: int, expected_elements: int, num_hashes: Optional[int] = None
    ) -> "FilterConfig":
        params = {"size": size, "expected_elements": expected_elements}
        if num_hashes is not None:
            params["num_hashes"] = num_hashes
        return resolve_config(SizingMode.EXPLICIT, **params)

    @classmethod
    def from_bits_per_element(
        cls, bits_per_element: float, expected_elements: int, num_hashes: int
    ) -> "FilterConfig":
        return resolve_config(
            SizingMode.RATIO,
            bits_per_element=bits_per_element,
            expected_elements=expected_elements,
            num_hashes=num_hashes,
        )

    @classmethod
    def from_false_positive_rate(
        cls, false_positive_rate: float, expected_elements: int
    ) -> "FilterConfig":
        return resolve_config(
            SizingMode.TARGET_RATE,
            false_positive_rate=false_positive_rate,
            expected_elements=expected_elements,
        )

    @property
    def expected_false_positive_probability(self) -> float:
        return false_positive_probability(self.size, self.num_hashes, self.expected_elements)


def _coerce_mode(mode: Union[SizingMode, str]) -> SizingMode:
    try:
        return SizingMode(mode)
    except ValueError as exc:
        raise ConfigurationError(f"unknown sizing mode: {mode!r}") from exc


def _check_params(mode: SizingMode, params: Mapping[str, Any]) -> None:
    required = _REQUIRED[mode]
    missing = required - params.keys()
    if missing:
        raise ConfigurationError(
            f"{mode.value} mode requires {', '.join(sorted(missing))}"
        )
    unexpected = params.keys() - required - _OPTIONAL[mode]
    if unexpected:
        raise ConfigurationError(
            f"{mode.value} mode does not accept {', '.join(sorted(unexpected))}"
        )


def resolve_config(mode: Union[SizingMode, str], **params: Any) -> FilterConfig:
    """Build a :class:`FilterConfig` from one of the :class:`SizingMode` inputs.

    Args:
        mode: Which parameter set is supplied.
        **params: The parameters of that mode (see :class:`SizingMode`).

    Raises:
        ConfigurationError: If a parameter is missing, unexpected or outside
            its domain.
    """
    mode = _coerce_mode(mode)
    _check_params(mode, params)
    n = _check_count("expected_elements", params["expected_elements"])

    if mode is SizingMode.EXPLICIT:
        m = _check_count("size", params["size"])
        k = params.get("num_hashes")
        if k is None:
            k = optimal_num_hashes(m, n)
        config = FilterConfig(m, n, k)

    elif mode is SizingMode.RATIO:
        c = params["bits_per_element"]
        k = _check_count("num_hashes", params["num_hashes"])
        if isinstance(c, bool) or not isinstance(c, (int, float)) or not 0 < c < math.inf:
            raise ConfigurationError(f"bits_per_element must be positive, got {c!r}")
        product = c * n
        if isinstance(product, float) and not math.isfinite(product):
            raise ConfigurationError(
                f"bits_per_element * expected_elements overflows: {c!r} * {n}"
            )
        m = int(round(product))
        config = FilterConfig(m, n, k, bits_per_element=float(c))

    else:
        p = params["false_positive_rate"]
        if isinstance(p, bool) or not isinstance(p, (int, float)) or not 0.0 < p < 1.0:
            raise ConfigurationError(
                f"false_positive_rate must lie strictly between 0 and 1, got {p!r}"
            )
        m = int(math.ceil(-n * math.log(p) / (LN2 * LN2)))
        config = FilterConfig(m, n, optimal_num_hashes(m, n), false_positive_rate=float(p))

    logger.debug(
        "Resolved %s config: m=%d n=%d k=%d",
        mode.value,
        config.size,
        config.expected_elements,
        config.num_hashes,
    )
    return config
