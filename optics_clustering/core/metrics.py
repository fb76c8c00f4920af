"""
Distance Metrics for the OPTICS ordering engine.

The engine is generic over a distance capability: any object exposing
``distance(a, b) -> float`` (or a plain callable wrapped in CallableMetric).
Three reference metrics are provided:

- euclidean: fixed-dimension numeric vectors
- ciede2000: perceptual color difference of RGB triples (via CIE L*a*b*)
- haversine: great-circle distance in miles between (latitude, longitude) pairs

All reference metrics return 0 when the two payloads are value-equal.
"""

import logging
import math
from abc import ABC, abstractmethod
from functools import lru_cache
from typing import Any, Callable, Dict, Optional, Sequence, Tuple, Type, Union

import numpy as np

from optics_clustering.utils.error_handling import (
    ConfigurationError,
    InvalidInputError,
)

logger = logging.getLogger(__name__)

Payload = Tuple[Any, ...]


class BaseDistanceMetric(ABC):
    """
    Abstract base class for distance metrics.

    Subclasses implement distance(); validate() normalizes payloads at
    ingestion and enforces the metric's arity.
    """

    name: str = "base"
    default_dimensions: Optional[int] = None

    def __init__(self, dimensions: Optional[int] = None):
        """
        Initialize metric.

        Args:
            dimensions: Expected payload arity (None = metric default)
        """
        self.dimensions = dimensions if dimensions is not None else self.default_dimensions

    def validate(self, payload: Union[Sequence[Any], np.ndarray]) -> Payload:
        """
        Normalize a payload into a tuple and check its arity.

        Args:
            payload: Point coordinates (sequence or numpy row)

        Returns:
            Payload as a tuple of Python scalars

        Raises:
            InvalidInputError: If the payload is not a sequence or its arity
                does not match the expected dimensions
        """
        if isinstance(payload, np.ndarray):
            values = tuple(payload.tolist())
        else:
            try:
                values = tuple(payload)
            except TypeError:
                raise InvalidInputError(
                    "Invalid data point",
                    details={"payload": repr(payload), "metric": self.name},
                )

        if self.dimensions is not None and len(values) != self.dimensions:
            raise InvalidInputError(
                "Invalid data point",
                details={
                    "metric": self.name,
                    "expected_dimensions": self.dimensions,
                    "actual_dimensions": len(values),
                },
            )
        return values

    @abstractmethod
    def distance(self, a: Payload, b: Payload) -> float:
        """
        Distance between two payloads.

        Args:
            a: First payload
            b: Second payload

        Returns:
            Non-negative distance
        """
        pass

    def __call__(self, a: Payload, b: Payload) -> float:
        return self.distance(a, b)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(dimensions={self.dimensions})"


def _dimension(point: Payload, i: int) -> float:
    """Read one coordinate, rejecting dimensions the point does not have."""
    if i < 0 or i >= len(point):
        raise InvalidInputError(
            "Tried to access a non-existent dimension of a point.",
            details={"dimension": i, "point_dimensions": len(point)},
        )
    return point[i]


# =============================================================================
# Euclidean
# =============================================================================


class EuclideanMetric(BaseDistanceMetric):
    """Straight-line distance over fixed-dimension numeric vectors."""

    name = "euclidean"
    default_dimensions = 2

    def distance(self, a: Payload, b: Payload) -> float:
        dimensions = self.dimensions if self.dimensions is not None else len(a)
        total = 0.0
        # Accumulated from the last dimension down to the first
        for i in range(dimensions - 1, -1, -1):
            diff = _dimension(a, i) - _dimension(b, i)
            total += diff * diff
        return math.sqrt(total)


# =============================================================================
# CIEDE2000 perceptual color distance
# =============================================================================

# 25 ** 7
_POW25_7 = 6103515625.0

# D65 reference white, 2 degree observer
_WHITE_X = 95.047
_WHITE_Y = 100.000
_WHITE_Z = 108.883

_LAB_EPSILON = 216.0 / 24389.0
_LAB_KAPPA = 24389.0 / 27.0


@lru_cache(maxsize=65536)
def rgb_to_cie_lab(rgb: Tuple[float, float, float]) -> Tuple[float, float, float]:
    """
    Convert an sRGB triple (0-255) to CIE L*a*b*.

    Args:
        rgb: (r, g, b) tuple

    Returns:
        (L, a, b) tuple
    """
    linear = []
    for channel in rgb:
        c = channel / 255.0
        c = ((c + 0.055) / 1.055) ** 2.4 if c > 0.04045 else c / 12.92
        linear.append(c * 100.0)
    r, g, b = linear

    x = (r * 0.4124 + g * 0.3576 + b * 0.1805) / _WHITE_X
    y = (r * 0.2126 + g * 0.7152 + b * 0.0722) / _WHITE_Y
    z = (r * 0.0193 + g * 0.1192 + b * 0.9505) / _WHITE_Z

    def pivot(t: float) -> float:
        return t ** (1.0 / 3.0) if t > _LAB_EPSILON else (_LAB_KAPPA * t + 16.0) / 116.0

    x, y, z = pivot(x), pivot(y), pivot(z)

    return (max(0.0, 116.0 * y - 16.0), 500.0 * (x - y), 200.0 * (y - z))


def _hue_degrees(b: float, a_prime: float) -> float:
    if b == 0 and a_prime == 0:
        return 0.0
    h = math.degrees(math.atan2(b, a_prime))
    return h + 360.0 if h < 0 else h


def ciede2000(
    lab1: Tuple[float, float, float],
    lab2: Tuple[float, float, float],
    kl: float = 1.0,
    kc: float = 1.0,
    kh: float = 1.0,
) -> float:
    """
    CIEDE2000 color difference between two L*a*b* colors.

    Follows Sharma, Wu and Dalal, "The CIEDE2000 Color-Difference Formula:
    Implementation Notes, Supplementary Test Data, and Mathematical
    Observations" (equation numbers in the comments).
    Values intentionally differ from variants that use a 0.046 chroma
    weight, take R_C from the mean C or offset hues by 360 degrees.

    Args:
        lab1: First color (L, a, b)
        lab2: Second color (L, a, b)
        kl, kc, kh: Parametric weighting factors

    Returns:
        Delta E 2000
    """
    l1, a1, b1 = lab1
    l2, a2, b2 = lab2

    # 2-3
    c1 = math.sqrt(a1 * a1 + b1 * b1)
    c2 = math.sqrt(a2 * a2 + b2 * b2)
    bar_c = (c1 + c2) / 2.0

    # 4
    bar_c7 = bar_c ** 7
    g = 0.5 * (1.0 - math.sqrt(bar_c7 / (bar_c7 + _POW25_7)))

    # 5-7
    a1_prime = (1.0 + g) * a1
    a2_prime = (1.0 + g) * a2
    c1_prime = math.sqrt(a1_prime * a1_prime + b1 * b1)
    c2_prime = math.sqrt(a2_prime * a2_prime + b2 * b2)
    h1_prime = _hue_degrees(b1, a1_prime)
    h2_prime = _hue_degrees(b2, a2_prime)

    # 8-11
    delta_l_prime = l2 - l1
    delta_c_prime = c2_prime - c1_prime
    chroma_product = c1_prime * c2_prime
    hue_diff = h2_prime - h1_prime
    if chroma_product == 0:
        delta_h_prime = 0.0
    elif abs(hue_diff) <= 180.0:
        delta_h_prime = hue_diff
    elif hue_diff > 180.0:
        delta_h_prime = hue_diff - 360.0
    else:
        delta_h_prime = hue_diff + 360.0
    delta_big_h_prime = 2.0 * math.sqrt(chroma_product) * math.sin(math.radians(delta_h_prime / 2.0))

    # 12-14
    bar_l_prime = (l1 + l2) / 2.0
    bar_c_prime = (c1_prime + c2_prime) / 2.0
    hue_sum = h1_prime + h2_prime
    if chroma_product == 0:
        bar_h_prime = hue_sum
    elif abs(h1_prime - h2_prime) <= 180.0:
        bar_h_prime = hue_sum / 2.0
    elif hue_sum < 360.0:
        bar_h_prime = (hue_sum + 360.0) / 2.0
    else:
        bar_h_prime = (hue_sum - 360.0) / 2.0

    # 15-21
    t = (
        1.0
        - 0.17 * math.cos(math.radians(bar_h_prime - 30.0))
        + 0.24 * math.cos(math.radians(2.0 * bar_h_prime))
        + 0.32 * math.cos(math.radians(3.0 * bar_h_prime + 6.0))
        - 0.20 * math.cos(math.radians(4.0 * bar_h_prime - 63.0))
    )
    delta_theta = 30.0 * math.exp(-(((bar_h_prime - 275.0) / 25.0) ** 2))
    bar_c_prime7 = bar_c_prime ** 7
    r_c = 2.0 * math.sqrt(bar_c_prime7 / (bar_c_prime7 + _POW25_7))
    sl_helper = (bar_l_prime - 50.0) ** 2
    s_l = 1.0 + (0.015 * sl_helper) / math.sqrt(20.0 + sl_helper)
    s_c = 1.0 + 0.045 * bar_c_prime
    s_h = 1.0 + 0.015 * bar_c_prime * t
    r_t = -math.sin(math.radians(2.0 * delta_theta)) * r_c

    # 22
    term_l = delta_l_prime / (kl * s_l)
    term_c = delta_c_prime / (kc * s_c)
    term_h = delta_big_h_prime / (kh * s_h)
    delta_e_squared = term_l ** 2 + term_c ** 2 + term_h ** 2 + r_t * term_c * term_h

    return math.sqrt(max(0.0, delta_e_squared))


class CIEDE2000Metric(BaseDistanceMetric):
    """Perceptual color distance between RGB triples."""

    name = "ciede2000"
    default_dimensions = 3

    def distance(self, a: Payload, b: Payload) -> float:
        if a == b:
            return 0.0
        return ciede2000(rgb_to_cie_lab(tuple(a)), rgb_to_cie_lab(tuple(b)))


# =============================================================================
# Haversine (Earth, miles)
# =============================================================================

# Degree to radian factor and Earth diameter in miles
DEGREES_TO_RADIANS = 0.01745
EARTH_DIAMETER_MILES = 7926.3352

# Farthest two points on the sphere can be
MAX_HAVERSINE_MILES = EARTH_DIAMETER_MILES * math.pi / 2.0


class HaversineMetric(BaseDistanceMetric):
    """Great-circle distance in miles between (latitude, longitude) pairs."""

    name = "haversine"
    default_dimensions = 2

    def distance(self, a: Payload, b: Payload) -> float:
        if a == b:
            return 0.0

        lat1 = DEGREES_TO_RADIANS * _dimension(a, 0)
        lat2 = DEGREES_TO_RADIANS * _dimension(b, 0)

        sin_lat = math.sin((lat2 - lat1) / 2.0)
        sin_lon = math.sin(DEGREES_TO_RADIANS * (_dimension(b, 1) - _dimension(a, 1)) / 2.0)
        h = sin_lat * sin_lat + math.cos(lat1) * math.cos(lat2) * sin_lon * sin_lon

        return EARTH_DIAMETER_MILES * math.asin(min(1.0, math.sqrt(h)))


# =============================================================================
# Plain callables
# =============================================================================


class CallableMetric(BaseDistanceMetric):
    """Adapts a plain ``(a, b) -> float`` function to the metric interface."""

    def __init__(
        self,
        func: Callable[[Payload, Payload], float],
        name: Optional[str] = None,
        dimensions: Optional[int] = None,
    ):
        super().__init__(dimensions)
        self.func = func
        self.name = name or getattr(func, "__name__", "custom")

    def distance(self, a: Payload, b: Payload) -> float:
        return float(self.func(a, b))

    def __repr__(self) -> str:
        return f"CallableMetric(name={self.name!r}, dimensions={self.dimensions})"


# Registry of available metrics
METRICS: Dict[str, Type[BaseDistanceMetric]] = {
    "euclidean": EuclideanMetric,
    "ciede2000": CIEDE2000Metric,
    "haversine": HaversineMetric,
}


def get_metric(
    metric: Union[str, BaseDistanceMetric, Callable[[Payload, Payload], float]],
    dimensions: Optional[int] = None,
) -> BaseDistanceMetric:
    """
    Resolve a metric name, instance or callable into a metric instance.

    Args:
        metric: Registered name (case-insensitive), metric instance or callable
        dimensions: Payload arity override

    Returns:
        Metric instance

    Raises:
        ConfigurationError: If the metric name is not registered
    """
    if isinstance(metric, BaseDistanceMetric):
        return metric

    if isinstance(metric, str):
        name = metric.lower()
        if name not in METRICS:
            raise ConfigurationError(
                f"Unsupported metric '{metric}'. Supported: {list(METRICS.keys())}",
                details={"metric": metric},
            )
        logger.debug(f"Resolved metric '{name}' (dimensions={dimensions})")
        return METRICS[name](dimensions)

    if callable(metric):
        logger.debug(f"Wrapping callable {metric!r} as a distance metric")
        return CallableMetric(metric, dimensions=dimensions)

    raise ConfigurationError(
        f"Unsupported metric {metric!r}. Supported: {list(METRICS.keys())}",
        details={"metric": repr(metric)},
    )
