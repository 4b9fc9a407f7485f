"""
Vendor evaluation results.

Wraps the vendor's raw treatment answer; typed results handed back to
callers are OpenFeature FlagResolutionDetails.
"""

from dataclasses import dataclass
from typing import Dict, Optional

CONTROL_TREATMENT = "control"


@dataclass(frozen=True)
class TreatmentResult:
    """The vendor's raw answer for a flag: treatment plus optional config."""

    treatment: str
    config: Optional[str] = None

    @property
    def is_control(self) -> bool:
        """True when the vendor served the control treatment (flag not found)."""
        return self.treatment.lower() == CONTROL_TREATMENT


def config_metadata(config: Optional[str]) -> Dict[str, str]:
    """Map a treatment config to flag metadata; a missing config becomes ""."""
    return {"config": config or ""}
