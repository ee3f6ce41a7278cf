import logging
from dataclasses import dataclass, field
from typing import List

from scorecard.constants import CORE_METRIC_IDS, FINANCIAL_METRIC_IDS, METRIC_FIELDS

logger = logging.getLogger(__name__)


@dataclass
class DashboardPreferences:
    """
    Which rows a user sees on the dashboard.

    Financial metrics are always visible; core metrics are shown when listed in
    `visible_core_metrics`; custom indicators are shown unless listed in
    `hidden_custom_kpis`.
    """
    business_id: str
    user_id: str
    visible_core_metrics: List[str] = field(default_factory=lambda: list(CORE_METRIC_IDS))
    hidden_custom_kpis: List[str] = field(default_factory=list)

    def to_record(self):
        return {
            'business_id': self.business_id,
            'user_id': self.user_id,
            'visible_core_metrics': list(self.visible_core_metrics),
            'hidden_custom_kpis': list(self.hidden_custom_kpis),
        }

    @classmethod
    def from_record(cls, record):
        visible = record.get('visible_core_metrics')
        return cls(
            business_id=record['business_id'],
            user_id=record['user_id'],
            visible_core_metrics=list(CORE_METRIC_IDS) if visible is None else list(visible),
            hidden_custom_kpis=list(record.get('hidden_custom_kpis') or []),
        )


def default_preferences(business_id, user_id):
    return DashboardPreferences(business_id=business_id, user_id=user_id)


def is_metric_visible(preferences, metric_id):
    if metric_id not in METRIC_FIELDS:
        raise KeyError(f"Unknown metric id: {metric_id}. Expected one of {list(METRIC_FIELDS)}")
    if preferences is None or metric_id in FINANCIAL_METRIC_IDS:
        return True
    return metric_id in preferences.visible_core_metrics


def is_kpi_visible(preferences, kpi_id):
    return preferences is None or kpi_id not in preferences.hidden_custom_kpis


def visible_metric_ids(preferences):
    return [metric_id for metric_id in METRIC_FIELDS if is_metric_visible(preferences, metric_id)]


def toggle_core_metric(preferences, metric_id):
    """Shows a hidden core metric or hides a visible one; financial metrics can not be toggled."""
    if metric_id not in CORE_METRIC_IDS:
        raise ValueError(f"Only core metrics can be hidden, got {metric_id}. Core metrics are {list(CORE_METRIC_IDS)}")
    if metric_id in preferences.visible_core_metrics:
        preferences.visible_core_metrics.remove(metric_id)
    else:
        preferences.visible_core_metrics.append(metric_id)
    logger.info(f"Core metric {metric_id} visible={metric_id in preferences.visible_core_metrics}")
    return preferences


def toggle_custom_kpi(preferences, kpi_id):
    if kpi_id in preferences.hidden_custom_kpis:
        preferences.hidden_custom_kpis.remove(kpi_id)
    else:
        preferences.hidden_custom_kpis.append(kpi_id)
    return preferences
