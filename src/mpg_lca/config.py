import os
import logging
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Mapping, Optional, Tuple

import pandas as pd

from .constants import (
    DEFAULT_MPG_LIMIT, DEFAULT_SERVICE_LIFE, GLOBAL_DEFAULT_SERVICE_LIFE,
    END_OF_LIFE_PHASES, DECIMALS,
)

logger = logging.getLogger(__name__)

# The parameter workbook lives in the project root:
#   <root>/data/parameters_config/project_parameters.xlsx
# This file is <root>/src/mpg_lca/config.py, so the root is three levels up.
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
DEFAULT_CONFIG_PATH = os.path.join(PROJECT_ROOT, "data", "parameters_config", "project_parameters.xlsx")


def load_excel_config(path: str = DEFAULT_CONFIG_PATH) -> Dict[str, Any]:
    """
    Load configuration from Excel file.
    Expected columns: Key, Value (Unit, Section, Description are ignored)
    Returns a dictionary of Key -> Value. Empty cells are skipped.
    """
    config = {}
    if not os.path.exists(path):
        logger.warning(f"Config file not found at {path}. Using defaults.")
        return config

    try:
        df = pd.read_excel(path)
    except (OSError, ValueError) as e:
        logger.error(f"Failed to load config from {path}: {e}")
        return config

    if "Key" not in df.columns or "Value" not in df.columns:
        logger.warning(f"Excel file {path} missing 'Key' or 'Value' columns.")
        return config

    for _, row in df.iterrows():
        if pd.isna(row["Key"]) or pd.isna(row["Value"]):
            continue
        key = str(row["Key"]).strip()
        config[key] = row["Value"]
    logger.info(f"Loaded {len(config)} parameters from {path}")
    return config


@dataclass(frozen=True)
class EngineSettings:
    """
    Everything that tunes a calculation run.

    - debug: record every formula step in the audit trail (DEBUG log level).
    - audit_path: optional text file the audit trail is appended to.
    - default_mpg_limit: limit used (provisionally) when the building type
      has no reference value.
    - include_d_in_compliance: add module D to the total the MPG value is
      computed from. Off: D is reported separately only.
    - replacement_eol_phases: end-of-life modules re-incurred by every
      replacement (B4). Defaults to the full C1-C4 set.
    - estimate_missing_a5: estimate A5 as a fraction of A1-A3 by element
      category when a material declares no A5 coefficient.
    - category_service_life / global_service_life_years: service life
      fallbacks when neither the layer nor the material give one.
    - eol_scenario_factors: scenario -> {phase: multiplier} applied to the
      end-of-life modules (and D) of layers with a custom EoL scenario.
    """
    debug: bool = False
    audit_path: Optional[str] = None
    default_mpg_limit: float = DEFAULT_MPG_LIMIT
    include_d_in_compliance: bool = False
    replacement_eol_phases: Tuple[str, ...] = END_OF_LIFE_PHASES
    estimate_missing_a5: bool = False
    global_service_life_years: float = GLOBAL_DEFAULT_SERVICE_LIFE
    category_service_life: Mapping[str, float] = field(default_factory=lambda: dict(DEFAULT_SERVICE_LIFE))
    eol_scenario_factors: Mapping[str, Mapping[str, float]] = field(default_factory=dict)
    decimals: int = DECIMALS

    def __post_init__(self):
        unknown = [p for p in self.replacement_eol_phases if p not in END_OF_LIFE_PHASES]
        if unknown:
            raise ValueError(f"replacement_eol_phases may only contain {END_OF_LIFE_PHASES}, got {unknown}")
        for scenario, factors in self.eol_scenario_factors.items():
            bad = [p for p in factors if p not in END_OF_LIFE_PHASES + ("D",)]
            if bad:
                raise ValueError(f"End-of-life scenario '{scenario}' may only scale C1-C4 and D, got {bad}")
        if not self.default_mpg_limit > 0:
            raise ValueError("default_mpg_limit must be positive")
        if not self.global_service_life_years > 0:
            raise ValueError("global_service_life_years must be positive")


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "y", "on")
    return bool(value)


def _as_phases(value: Any) -> Tuple[str, ...]:
    if isinstance(value, str):
        return tuple(p.strip().upper() for p in value.split(",") if p.strip())
    return tuple(value)


def settings_from_config(config: Mapping[str, Any], base: Optional[EngineSettings] = None) -> EngineSettings:
    """
    Overlay Key/Value parameters on top of `base` (defaults if omitted).

    Recognised keys:
      DEBUG, AUDIT_PATH, DEFAULT_MPG_LIMIT, INCLUDE_D_IN_COMPLIANCE,
      REPLACEMENT_EOL_PHASES (comma separated), ESTIMATE_MISSING_A5,
      GLOBAL_SERVICE_LIFE_YEARS, DECIMALS,
      SERVICE_LIFE_<CATEGORY> (years), EOL_<SCENARIO>_<PHASE> (multiplier).
    """
    base = base or EngineSettings()
    changes: Dict[str, Any] = {}

    if "DEBUG" in config:
        changes["debug"] = _as_bool(config["DEBUG"])
    if "AUDIT_PATH" in config:
        changes["audit_path"] = str(config["AUDIT_PATH"])
    if "DEFAULT_MPG_LIMIT" in config:
        changes["default_mpg_limit"] = float(config["DEFAULT_MPG_LIMIT"])
    if "INCLUDE_D_IN_COMPLIANCE" in config:
        changes["include_d_in_compliance"] = _as_bool(config["INCLUDE_D_IN_COMPLIANCE"])
    if "REPLACEMENT_EOL_PHASES" in config:
        changes["replacement_eol_phases"] = _as_phases(config["REPLACEMENT_EOL_PHASES"])
    if "ESTIMATE_MISSING_A5" in config:
        changes["estimate_missing_a5"] = _as_bool(config["ESTIMATE_MISSING_A5"])
    if "GLOBAL_SERVICE_LIFE_YEARS" in config:
        changes["global_service_life_years"] = float(config["GLOBAL_SERVICE_LIFE_YEARS"])
    if "DECIMALS" in config:
        changes["decimals"] = int(config["DECIMALS"])

    service_life = dict(base.category_service_life)
    eol_factors = {k: dict(v) for k, v in base.eol_scenario_factors.items()}
    for key, value in config.items():
        if key.startswith("SERVICE_LIFE_"):
            service_life[key[len("SERVICE_LIFE_"):].lower()] = float(value)
        elif key.startswith("EOL_"):
            # EOL_<SCENARIO>_<PHASE>, scenario names may contain underscores
            scenario, _, phase = key[len("EOL_"):].rpartition("_")
            if not scenario:
                logger.warning(f"Ignoring malformed end-of-life parameter '{key}'")
                continue
            eol_factors.setdefault(scenario.lower(), {})[phase.upper()] = float(value)
    changes["category_service_life"] = service_life
    changes["eol_scenario_factors"] = eol_factors

    return replace(base, **changes)


def load_settings(path: str = DEFAULT_CONFIG_PATH, **overrides) -> EngineSettings:
    """
    Build EngineSettings from the parameter workbook (if present), then apply
    keyword overrides, e.g. load_settings(debug=True).
    """
    settings = settings_from_config(load_excel_config(path))
    if overrides:
        valid = {f.name for f in fields(EngineSettings)}
        unknown = set(overrides) - valid
        if unknown:
            raise TypeError(f"Unknown settings: {sorted(unknown)}")
        settings = replace(settings, **overrides)
    return settings


def settings_to_rows(settings: Optional[EngineSettings] = None):
    """Parameter rows (Key, Value, Unit, Section, Description) for a settings object."""
    s = settings or EngineSettings()
    rows = [
        {"Key": "DEBUG", "Value": s.debug, "Unit": "Boolean", "Section": "1. Global Settings",
         "Description": "Record every calculation step in the audit trail."},
        {"Key": "DECIMALS", "Value": s.decimals, "Unit": "Integer", "Section": "1. Global Settings",
         "Description": "Number of decimal places used for reporting results."},
        {"Key": "DEFAULT_MPG_LIMIT", "Value": s.default_mpg_limit, "Unit": "kgCO2e/m²/yr",
         "Section": "2. Compliance",
         "Description": "Limit applied (provisionally) when a building type has no reference value."},
        {"Key": "INCLUDE_D_IN_COMPLIANCE", "Value": s.include_d_in_compliance, "Unit": "Boolean",
         "Section": "2. Compliance",
         "Description": "Add module D to the total the MPG value is computed from."},
        {"Key": "REPLACEMENT_EOL_PHASES", "Value": ",".join(s.replacement_eol_phases), "Unit": "Text",
         "Section": "3. Replacement",
         "Description": "End-of-life modules re-incurred by each replacement (comma separated)."},
        {"Key": "GLOBAL_SERVICE_LIFE_YEARS", "Value": s.global_service_life_years, "Unit": "years",
         "Section": "3. Replacement",
         "Description": "Service life used when neither layer, material nor category define one."},
        {"Key": "ESTIMATE_MISSING_A5", "Value": s.estimate_missing_a5, "Unit": "Boolean",
         "Section": "4. Construction",
         "Description": "Estimate A5 from A1-A3 by element category when a material declares none."},
    ]
    for category, years in sorted(s.category_service_life.items()):
        rows.append({
            "Key": f"SERVICE_LIFE_{category.upper()}", "Value": years, "Unit": "years",
            "Section": "3. Replacement",
            "Description": f"Default reference service life for '{category}' materials.",
        })
    for scenario, factors in sorted(s.eol_scenario_factors.items()):
        for phase, factor in sorted(factors.items()):
            rows.append({
                "Key": f"EOL_{scenario.upper()}_{phase}", "Value": factor, "Unit": "factor",
                "Section": "5. End of Life",
                "Description": f"Multiplier on {phase} for layers with end-of-life scenario '{scenario}'.",
            })
    return rows


def write_parameter_template(output_path: str, settings: Optional[EngineSettings] = None) -> str:
    """Write a formatted, editable parameter workbook."""
    rows = settings_to_rows(settings)
    df = pd.DataFrame(rows)[["Section", "Key", "Value", "Unit", "Description"]]

    os.makedirs(os.path.dirname(os.path.abspath(output_path)), exist_ok=True)
    with pd.ExcelWriter(output_path, engine="xlsxwriter") as writer:
        df.to_excel(writer, sheet_name="Parameters", index=False)
        workbook = writer.book
        worksheet = writer.sheets["Parameters"]

        header_fmt = workbook.add_format({
            "bold": True,
            "text_wrap": True,
            "valign": "top",
            "fg_color": "#4F81BD",
            "font_color": "#FFFFFF",
            "border": 1,
        })
        value_fmt = workbook.add_format({"bg_color": "#FFFFCC", "border": 1})
        text_fmt = workbook.add_format({"text_wrap": True, "valign": "top", "border": 1})

        worksheet.set_column("A:A", 22)
        worksheet.set_column("B:B", 32)
        worksheet.set_column("C:C", 15, value_fmt)
        worksheet.set_column("D:D", 14)
        worksheet.set_column("E:E", 70, text_fmt)
        for col_num, value in enumerate(df.columns.values):
            worksheet.write(0, col_num, value, header_fmt)

    logger.info(f"Parameter template written to {output_path}")
    return output_path
