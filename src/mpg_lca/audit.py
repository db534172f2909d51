import os
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuditEntry:
    context: str
    formula: str
    variables: Dict[str, Any]
    result: float
    unit: str = ""

    def render(self) -> str:
        vars_str = ", ".join(f"{k}={v}" for k, v in self.variables.items())
        return (
            f"{self.context}\n"
            f"  Formula: {self.formula}\n"
            f"  Inputs:  {vars_str}\n"
            f"  Result:  {self.result:.4f} {self.unit}"
        )


class CalculationAudit:
    """
    Trail of the formula steps of one calculation run.

    Disabled audits are no-ops. Enabled audits keep the entries in memory,
    emit them on the DEBUG log level and, if `log_file` is given, append
    them to that file.
    """

    def __init__(self, enabled: bool = False, log_file: Optional[str] = None, session: Optional[str] = None):
        self.enabled = enabled
        self.log_file = log_file if enabled else None
        self.session_id = session or datetime.now().strftime("%Y%m%d_%H%M%S")
        self.entries: List[AuditEntry] = []

        if self.log_file:
            log_dir = os.path.dirname(os.path.abspath(self.log_file))
            os.makedirs(log_dir, exist_ok=True)
            with open(self.log_file, "a", encoding="utf-8") as f:
                f.write("=== MPG CALCULATION AUDIT LOG ===\n")
                f.write(f"Session: {self.session_id}\n")
                f.write("=================================\n\n")

    def log_calculation(self, context: str, formula: str, variables: Dict[str, Any], result: float, unit: str = ""):
        """
        Record a calculation step.

        Args:
            context: What is being calculated (e.g. "Layer L3: A1-A3")
            formula: Text representation of the equation (e.g. "units * coefficient")
            variables: Values used (e.g. {"units": 360.0, "coefficient": 0.3})
            result: The resulting value
            unit: Unit of the result (e.g. "kgCO2e")
        """
        if not self.enabled:
            return

        entry = AuditEntry(context=context, formula=formula, variables=dict(variables), result=result, unit=unit)
        self.entries.append(entry)
        logger.debug(entry.render())

        if self.log_file:
            with open(self.log_file, "a", encoding="utf-8") as f:
                f.write(f"[{datetime.now().strftime('%H:%M:%S')}] {entry.render()}\n")
                f.write("-" * 40 + "\n")
