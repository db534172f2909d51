import os
import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

import pandas as pd
from colorama import Fore, Style, Back

from .constants import REPORTED_PHASES, PHASE_LABELS, DECIMALS
from .models import CalculationResult, PhaseTable, Project
from .utils.calculations import f3

logger = logging.getLogger(__name__)

C_HEADER = Fore.CYAN + Style.BRIGHT
C_ERROR = Fore.RED
C_WARN = Fore.YELLOW
C_SUCCESS = Fore.GREEN
C_RESET = Style.RESET_ALL

REPORT_COLUMNS = [
    "Project ID",
    "Status",
    "MPG (kgCO2e/m²/yr)",
    "Limit (kgCO2e/m²/yr)",
    "Compliant",
    "Provisional",
    "Total A-C (kgCO2e)",
    "Total incl. D (kgCO2e)",
    "Per m² GFA (kgCO2e/m²)",
] + [f"[Phase] {p}" for p in REPORTED_PHASES] + [
    "Error Kind",
    "Error Entity",
    "Error Message",
]

PHASE_COLUMNS = [f"[Phase] {p}" for p in REPORTED_PHASES]


def print_header(text: str):
    """Print a styled header."""
    print(f"\n{C_HEADER}{'=' * 60}")
    print(f"{text.center(60)}")
    print(f"{'=' * 60}{C_RESET}")


# ============================================================================
# DATAFRAMES
# ============================================================================

def phase_table_frame(phases: PhaseTable) -> pd.DataFrame:
    rows = [
        {"Phase": p, "Description": PHASE_LABELS[p], "Impact (kgCO2e)": phases.get(p)}
        for p in REPORTED_PHASES
    ]
    return pd.DataFrame(rows, columns=["Phase", "Description", "Impact (kgCO2e)"])


def element_breakdown_frame(result: CalculationResult) -> pd.DataFrame:
    """One row per element: area, phase impacts, A-C total and share of the project."""
    shares = {}
    if result.totals:
        shares = {b.element_id: b.percentage for b in result.totals.breakdown_by_element}

    rows = []
    for e in result.elements:
        row = {
            "Element ID": e.element_id,
            "Element": e.element_name,
            "Category": e.category,
            "Area (m²)": e.area_m2,
        }
        for p in REPORTED_PHASES:
            row[p] = e.phases.get(p)
        row["Total A-C (kgCO2e)"] = e.total_a_to_c
        row["Total incl. D (kgCO2e)"] = e.total_with_d
        row["Share (%)"] = shares.get(e.element_id, 0.0)
        rows.append(row)
    columns = ["Element ID", "Element", "Category", "Area (m²)"] + list(REPORTED_PHASES) + [
        "Total A-C (kgCO2e)", "Total incl. D (kgCO2e)", "Share (%)"
    ]
    return pd.DataFrame(rows, columns=columns)


def layer_detail_frame(result: CalculationResult) -> pd.DataFrame:
    rows = []
    for e in result.elements:
        for lr in e.layers:
            phases = lr.phases
            row = {
                "Element": e.element_name,
                "Position": lr.position,
                "Layer ID": lr.layer_id,
                "Material": lr.material_name,
                "Volume (m³)": lr.quantity.volume_m3,
                "Mass (kg)": lr.quantity.mass_kg,
                "Declared Units": lr.quantity.units,
                "Service Life (yr)": lr.schedule.service_life_years,
                "Service Life Source": lr.schedule.service_life_source,
                "Replacements": lr.schedule.replacements,
            }
            for p in REPORTED_PHASES:
                row[p] = phases.get(p)
            row["Total A-C (kgCO2e)"] = phases.total_a_to_c
            rows.append(row)
    return pd.DataFrame(rows)


def summary_row(result: CalculationResult) -> Dict[str, object]:
    row: Dict[str, object] = {"Project ID": result.project_id, "Status": result.status}
    if result.succeeded:
        v = result.compliance
        t = result.totals
        row.update({
            "MPG (kgCO2e/m²/yr)": v.mpg_value,
            "Limit (kgCO2e/m²/yr)": v.reference_limit,
            "Compliant": v.is_compliant,
            "Provisional": v.provisional,
            "Total A-C (kgCO2e)": t.total_a_to_c,
            "Total incl. D (kgCO2e)": t.total_with_d,
            "Per m² GFA (kgCO2e/m²)": t.per_m2,
        })
        for p in REPORTED_PHASES:
            row[f"[Phase] {p}"] = t.phases.get(p)
    if result.error:
        row.update({
            "Error Kind": result.error.kind,
            "Error Entity": result.error.entity_id,
            "Error Message": result.error.message,
        })
    return row


def format_result_frame(results: Sequence[CalculationResult]) -> pd.DataFrame:
    """
    Batch summary, one row per project, in a fixed column order.
    Missing phase columns are filled with 0.0; unknown columns are kept at the end.
    """
    df = pd.DataFrame([summary_row(r) for r in results])
    for col in REPORT_COLUMNS:
        if col not in df.columns:
            df[col] = 0.0 if col in PHASE_COLUMNS else None
    df[PHASE_COLUMNS] = df[PHASE_COLUMNS].fillna(0.0)
    extra = [c for c in df.columns if c not in REPORT_COLUMNS]
    return df[REPORT_COLUMNS + extra]


# ============================================================================
# CONSOLE
# ============================================================================

def print_result(result: CalculationResult, project: Optional[Project] = None, decimals: int = DECIMALS):
    """Console report for one calculation: phase table, elements, verdict."""
    title = project.name if project else result.project_id
    print(f"\n{Back.BLACK}{C_HEADER}{'=' * 60}")
    print(f"   MPG RESULT: {title.upper()}")
    print(f"{'=' * 60}{Style.RESET_ALL}")

    if not result.succeeded:
        err = result.error
        print(f"\n{C_ERROR}Calculation {result.status}.{C_RESET}")
        if err:
            print(f"  Kind    : {err.kind}")
            print(f"  Entity  : {err.entity_id}")
            print(f"  Message : {err.message}")
        print(f"{'=' * 60}\n")
        return

    if project:
        print(f"\n{C_HEADER}Project:{C_RESET}")
        print(f"  Building type:      {project.building_type}")
        print(f"  Gross floor area:   {f3(project.gross_floor_area, decimals)} m²")
        print(f"  Study period:       {project.study_period:.0f} years")
        if project.energy_label:
            print(f"  Energy label:       {project.energy_label}")

    totals = result.totals
    print(f"\n{C_HEADER}Impact per phase (kg CO2e):{C_RESET}")
    for p in REPORTED_PHASES:
        print(f"  {p:<6} {PHASE_LABELS[p]:<24} : {f3(totals.phases.get(p), decimals)}")
    print(f"{'-' * 60}")
    print(f"  Total A-C                       : {f3(totals.total_a_to_c, decimals)}")
    print(f"  Total incl. D                   : {f3(totals.total_with_d, decimals)}")

    print(f"\n{C_HEADER}Elements (A-C):{C_RESET}")
    for b in totals.breakdown_by_element:
        print(f"  {b.element_name:<30} : {f3(b.total_impact, decimals)} kg CO2e ({b.percentage:.1f}%)")

    v = result.compliance
    colour = C_SUCCESS if v.is_compliant else C_ERROR
    verdict = "COMPLIANT" if v.is_compliant else "NOT COMPLIANT"
    print(f"\n{C_HEADER}Compliance:{C_RESET}")
    print(f"  {Style.BRIGHT}MPG value : {colour}{f3(v.mpg_value, decimals)}{C_RESET} {Style.BRIGHT}kg CO2e/m²/yr{C_RESET}")
    print(f"  Limit     : {v.reference_limit} ({v.reference_source})")
    print(f"  Verdict   : {colour}{verdict}{C_RESET}")
    if v.provisional:
        print(f"  {C_WARN}Provisional. {v.warning.message}{C_RESET}")
    if v.total_carbon is not None:
        print(f"  Operational carbon : {v.operational_carbon} kg CO2e/m²/yr (typical)")
        print(f"  Total carbon       : {f3(v.total_carbon, decimals)} kg CO2e/m²/yr")
    print(f"{'=' * 60}\n")


# ============================================================================
# EXPORT
# ============================================================================

def _write_sheet(writer: pd.ExcelWriter, df: pd.DataFrame, sheet_name: str):
    df.to_excel(writer, sheet_name=sheet_name, index=False)
    workbook = writer.book
    worksheet = writer.sheets[sheet_name]
    header_fmt = workbook.add_format({
        "bold": True,
        "text_wrap": True,
        "valign": "top",
        "fg_color": "#4F81BD",
        "font_color": "#FFFFFF",
        "border": 1,
    })
    for col_num, value in enumerate(df.columns.values):
        worksheet.write(0, col_num, value, header_fmt)
        worksheet.set_column(col_num, col_num, max(12, min(40, len(str(value)) + 2)))


def save_report(
    results: Sequence[CalculationResult],
    reports_dir: str,
    basename: str = "mpg_report",
) -> Tuple[str, str]:
    """
    Write the batch summary to CSV and a workbook with Summary, Elements and
    Layers sheets. Returns (csv_path, xlsx_path).
    """
    os.makedirs(reports_dir, exist_ok=True)
    summary = format_result_frame(results)

    element_frames: List[pd.DataFrame] = []
    layer_frames: List[pd.DataFrame] = []
    for r in results:
        if not r.succeeded:
            continue
        elements = element_breakdown_frame(r)
        elements.insert(0, "Project ID", r.project_id)
        element_frames.append(elements)
        layers = layer_detail_frame(r)
        layers.insert(0, "Project ID", r.project_id)
        layer_frames.append(layers)

    csv_path = os.path.join(reports_dir, f"{basename}.csv")
    try:
        summary.to_csv(csv_path, index=False)
    except PermissionError:
        ts = datetime.now().strftime("%Y%m%d_%H%M%S")
        csv_path = os.path.join(reports_dir, f"{basename}_{ts}.csv")
        logger.warning(f"Could not write {basename}.csv (file locked?). Saving to {csv_path} instead.")
        summary.to_csv(csv_path, index=False)

    xlsx_path = os.path.splitext(csv_path)[0] + ".xlsx"
    with pd.ExcelWriter(xlsx_path, engine="xlsxwriter") as writer:
        _write_sheet(writer, summary, "Summary")
        if element_frames:
            _write_sheet(writer, pd.concat(element_frames, ignore_index=True), "Elements")
        if layer_frames:
            _write_sheet(writer, pd.concat(layer_frames, ignore_index=True), "Layers")

    logger.info(f"Report saved to: {csv_path} and {xlsx_path}")
    return csv_path, xlsx_path
