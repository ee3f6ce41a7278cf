import logging
import numbers
from datetime import datetime

from scorecard.constants import (
    CALENDAR_YEAR,
    CONFIG_DATE_FORMAT,
    FISCAL_YEAR,
    METRIC_FIELDS,
    VIEW_MODES,
    WEEK_CONVENTIONS,
    YEAR_TYPES,
)
from scorecard.quarters import parse_month

logger = logging.getLogger(__name__)

REQUIRED_SETUP_KEYS = ('business_id', 'user_id')


class ScorecardValidator:
    def __init__(self, cfg: dict):
        """
        Initializes the ScorecardValidator that validates the yaml config of a dashboard.

        Args:
            cfg (dict): The dashboard YAML configuration, loaded with SafeLineLoader.
        """
        self.cfg = cfg

    def validate_yaml(self):
        self.check_setup()
        self.check_fiscal_year()
        self.check_week_preference()
        self.check_view_mode()
        self.check_today()
        self.check_targets()
        self.check_kpis()
        self.check_repository()

    def _setup(self):
        return self.cfg['setup']

    def _line(self, section):
        return section.get('__line__', 'unknown') if isinstance(section, dict) else 'unknown'

    def check_setup(self):
        """
        Raises:
            Exception: If the setup section or one of its required keys is missing.
        """
        if not isinstance(self.cfg, dict) or not isinstance(self.cfg.get('setup'), dict):
            raise Exception("The config must contain a SETUP section")

        for key in REQUIRED_SETUP_KEYS:
            if not self._setup().get(key):
                raise Exception(f"Error in SETUP section for {key} at line {self._line(self._setup())}")

    def check_fiscal_year(self):
        """
        Checks the fiscal year convention and its start month.

        Raises:
            ValueError: If the year type is unknown, the month is invalid, or a calendar year starts outside January.
        """
        setup = self._setup()
        year_type = setup.get('fiscal_year_type', CALENDAR_YEAR)
        if year_type not in YEAR_TYPES:
            raise ValueError(f"Invalid fiscal_year_type {year_type}, expected one of {list(YEAR_TYPES)}, at line: "
                             f"{self._line(setup)}")

        if 'fiscal_year_start_month' not in setup:
            return
        try:
            month = parse_month(setup['fiscal_year_start_month'])
        except ValueError as e:
            raise ValueError(f"{e}, at line: {self._line(setup)}")
        if year_type != FISCAL_YEAR and month != 1:
            raise ValueError(f"fiscal_year_start_month can only be set for fiscal_year_type {FISCAL_YEAR}, at line: "
                             f"{self._line(setup)}")

    def check_week_preference(self):
        setup = self._setup()
        if 'week_preference' in setup and setup['week_preference'] not in WEEK_CONVENTIONS:
            raise ValueError(f"Invalid week_preference {setup['week_preference']}, expected one of "
                             f"{list(WEEK_CONVENTIONS)}, at line: {self._line(setup)}")

    def check_view_mode(self):
        setup = self._setup()
        if 'view_mode' in setup and setup['view_mode'] not in VIEW_MODES:
            raise ValueError(f"Invalid view_mode {setup['view_mode']}, expected one of {list(VIEW_MODES)}, at line: "
                             f"{self._line(setup)}")

    def check_today(self):
        """
        Raises:
            ValueError: If the 'today' override is not in the dd-MMM-YYYY format.
        """
        setup = self._setup()
        if 'today' not in setup:
            return
        try:
            datetime.strptime(str(setup['today']), CONFIG_DATE_FORMAT)
        except ValueError:
            raise ValueError(f"today is in an invalid format, example of correct format: 17-MAY-2024, at line: "
                             f"{self._line(setup)}")

    def check_targets(self):
        """
        Checks each metric target names a snapshot metric field and has a numeric annual value.

        Raises:
            KeyError: If a target names an unknown field or misses its annual value.
        """
        for field_name, config in (self.cfg.get('targets') or {}).items():
            if field_name == '__line__':
                continue
            if field_name not in METRIC_FIELDS.values():
                raise KeyError(f"Unknown metric field {field_name} in TARGETS, expected one of "
                               f"{list(METRIC_FIELDS.values())}, at line: {self._line(config)}")
            if not isinstance(config, dict) or not _is_number(config.get('annual')):
                raise KeyError(f"A numeric annual target is required for the metric {field_name} at line: "
                               f"{self._line(config)}")

    def check_kpis(self):
        for kpi_id, config in (self.cfg.get('kpis') or {}).items():
            if kpi_id == '__line__':
                continue
            if not isinstance(config, dict) or not _is_number(config.get('quarterly', 0)):
                raise KeyError(f"The quarterly target of the kpi {kpi_id} must be a number, at line: "
                               f"{self._line(config)}")

    def check_repository(self):
        repository = self.cfg.get('repository')
        if repository is None:
            return
        if not isinstance(repository, dict) or 'type' not in repository:
            raise KeyError(f"The REPOSITORY section requires a type, at line: {self._line(repository)}")


def _is_number(value):
    return isinstance(value, numbers.Real) and not isinstance(value, bool)
