"""Number and percentage formatting shared by the dashboard and the exports."""
from dataclasses import dataclass
from typing import Optional, Union

Number = Union[int, float]

_SUFFIXES = [(1_000_000_000, "B"), (1_000_000, "M"), (1_000, "K")]


def _trim(value: float) -> str:
    text = f"{value:.1f}"
    return text[:-2] if text.endswith(".0") else text


def format_number(n: Optional[Number]) -> str:
    """Abbreviate large counts: 950 -> "950", 1500 -> "1.5K", 2_000_000 -> "2M".

    A value that rounds up to 1000 of one unit is promoted to the next one,
    so 999_999_999 renders as "1B" rather than "1000M".
    """
    if not n:
        return "0"
    sign = "-" if n < 0 else ""
    magnitude = abs(n)
    if magnitude < 1000:
        if isinstance(magnitude, float) and not magnitude.is_integer():
            return f"{sign}{magnitude:g}"
        return f"{sign}{int(magnitude)}"

    # smallest unit first so rounding overflow can be promoted upward
    units = list(reversed(_SUFFIXES))
    idx = next(i for i in reversed(range(len(units))) if magnitude >= units[i][0])
    scaled = round(magnitude / units[idx][0], 1)
    while scaled >= 1000 and idx + 1 < len(units):
        idx += 1
        scaled = round(magnitude / units[idx][0], 1)
    return f"{sign}{_trim(scaled)}{units[idx][1]}"


def format_percent(value: Optional[Number], decimals: int = 1) -> str:
    return f"{(value or 0):.{decimals}f}%"


def format_rate(rate: Optional[Number]) -> str:
    """Engagement-rate percentage with magnitude-dependent precision.

    Below 1% three decimals, below 10% two, otherwise one; small non-zero
    rates never collapse to "0.0%".
    """
    if not rate:
        return "0%"
    magnitude = abs(rate)
    if magnitude < 1:
        return f"{rate:.3f}%"
    if magnitude < 10:
        return f"{rate:.2f}%"
    return f"{rate:.1f}%"


@dataclass
class SentimentBreakdown:
    positive: int
    neutral: int
    negative: int

    @property
    def total(self) -> int:
        return self.positive + self.neutral + self.negative

    def _share(self, count: int) -> float:
        total = self.total
        return count / total * 100 if total > 0 else 0.0

    @property
    def positive_pct(self) -> float:
        return self._share(self.positive)

    @property
    def neutral_pct(self) -> float:
        return self._share(self.neutral)

    @property
    def negative_pct(self) -> float:
        return self._share(self.negative)


def sentiment_breakdown(positive: Optional[int], neutral: Optional[int],
                        negative: Optional[int]) -> SentimentBreakdown:
    return SentimentBreakdown(positive or 0, neutral or 0, negative or 0)
