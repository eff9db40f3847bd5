"""
Anomaly Detector
Compares an agent's most recent day against the average of the preceding days
"""
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Iterable, List

from agentledger.api.models.api_models import AnomalyReport
from agentledger.constants import DEFAULT_ANOMALY_THRESHOLD, MIN_DAYS_FOR_BASELINE

# Reason codes
INSUFFICIENT_HISTORY = "insufficient_history"
WITHIN_BASELINE = "within_baseline"
COUNT_DEVIATION = "count_deviation"
AMOUNT_DEVIATION = "amount_deviation"
COUNT_AND_AMOUNT_DEVIATION = "count_and_amount_deviation"


@dataclass(frozen=True)
class DailyObservation:
    """One calendar day of an agent's activity (never persisted)"""
    day: date
    transaction_count: int
    total_amount: float

    @classmethod
    def from_trend(cls, trend: Dict[str, Any]) -> "DailyObservation":
        return cls(
            day=trend["day"],
            transaction_count=int(trend["transactions"]),
            total_amount=float(trend["amount"]),
        )


def is_anomalous(current: float, historical_average: float, threshold: float = DEFAULT_ANOMALY_THRESHOLD) -> bool:
    """
    True iff |current - average| / average > threshold (strict)
    An average of 0 means no usable history, never anomalous
    """
    if historical_average == 0:
        return False

    deviation = abs(current - historical_average) / historical_average
    return deviation > threshold


def evaluate_observations(
    agent_id: str,
    observations: Iterable[DailyObservation],
    threshold: float = DEFAULT_ANOMALY_THRESHOLD
) -> AnomalyReport:
    """
    Flag the most recent day against the mean of all earlier days

    Args:
        agent_id: Agent under inspection
        observations: Day buckets in any order
        threshold: Relative deviation cutoff

    Returns:
        AnomalyReport with the verdict and a reason code
    """
    days: List[DailyObservation] = sorted(observations, key=lambda obs: obs.day)

    if len(days) < MIN_DAYS_FOR_BASELINE:
        return AnomalyReport(
            agent_id=agent_id,
            is_suspicious=False,
            reason=INSUFFICIENT_HISTORY,
            days_observed=len(days)
        )

    *history, latest = days
    avg_count = sum(d.transaction_count for d in history) / len(history)
    avg_amount = sum(d.total_amount for d in history) / len(history)

    count_flag = is_anomalous(latest.transaction_count, avg_count, threshold)
    amount_flag = is_anomalous(latest.total_amount, avg_amount, threshold)

    if count_flag and amount_flag:
        reason = COUNT_AND_AMOUNT_DEVIATION
    elif count_flag:
        reason = COUNT_DEVIATION
    elif amount_flag:
        reason = AMOUNT_DEVIATION
    else:
        reason = WITHIN_BASELINE

    return AnomalyReport(
        agent_id=agent_id,
        is_suspicious=count_flag or amount_flag,
        reason=reason,
        days_observed=len(days)
    )
