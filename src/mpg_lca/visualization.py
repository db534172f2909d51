import os
import logging
from datetime import datetime
from typing import Optional

import matplotlib.pyplot as plt
import pandas as pd

from .constants import REPORTED_PHASES, PHASE_LABELS
from .models import CalculationResult

logger = logging.getLogger(__name__)

# ============================================================================
# VISUALIZER CLASS
# ============================================================================

# <root>/reports, next to src/
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
REPORT_DIRECTORY = os.path.join(PROJECT_ROOT, "reports")


class Visualizer:
    def __init__(self, mode: str = "single_run", output_root: Optional[str] = None):
        """
        mode: 'single_run' (one project) or 'batch_run' (several projects)
        output_root: where session folders are created (default <root>/reports)
        """
        self.mode = mode
        self.output_root = output_root or REPORT_DIRECTORY
        self._setup_style()
        self.session_dir = self._create_session_dir()

    def _setup_style(self):
        plt.rcParams.update(plt.rcParamsDefault)
        plt.rcParams.update({
            'font.family': 'sans-serif',
            'font.sans-serif': ['Arial', 'Helvetica', 'Calibri', 'DejaVu Sans'],
            'font.size': 12,
            'axes.titlesize': 16,
            'axes.titleweight': 'bold',
            'axes.labelsize': 13,
            'text.color': '#2C3E50',
            'axes.labelcolor': '#2C3E50',
            'xtick.color': '#2C3E50',
            'ytick.color': '#2C3E50',
            'axes.spines.top': False,
            'axes.spines.right': False,
            'grid.color': '#E0E0E0',
            'grid.linestyle': ':',
            'axes.grid': True,
            'axes.grid.axis': 'y',
            'axes.axisbelow': True,
        })

        self.colors = {
            'burden': '#5D6D7E',       # Slate
            'replacement': '#FF8A65',  # Coral
            'credit': '#81C784',       # Green
            'limit': '#D32F2F',        # Red
            'text': '#2C3E50',
        }

    def _create_session_dir(self) -> str:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        subdir = "batch_run" if self.mode == "batch_run" else "single_run"
        path = os.path.join(self.output_root, subdir, timestamp)
        os.makedirs(path, exist_ok=True)
        return path

    def get_save_path(self, filename: str) -> str:
        return os.path.join(self.session_dir, filename)

    def _phase_color(self, phase: str, value: float) -> str:
        if value < 0:
            return self.colors['credit']
        if phase == "B4":
            return self.colors['replacement']
        return self.colors['burden']

    # ============================================================================
    # SINGLE RUN PLOTS
    # ============================================================================

    def plot_phase_breakdown(self, result: CalculationResult, title: str = "") -> Optional[str]:
        """Bar chart of the project impact per life-cycle phase (module D shown as credit)."""
        if not result.succeeded:
            logger.warning(f"No phase chart for project {result.project_id}: calculation {result.status}")
            return None

        phases = result.totals.phases
        values = [phases.get(p) for p in REPORTED_PHASES]

        fig, ax = plt.subplots(figsize=(10, 6), dpi=150)
        bars = ax.bar(
            REPORTED_PHASES, values, width=0.6, edgecolor='none', alpha=0.85,
            color=[self._phase_color(p, v) for p, v in zip(REPORTED_PHASES, values)],
        )
        ax.axhline(0, color=self.colors['text'], linewidth=0.8)
        ax.set_ylabel("Impact (kgCO2e)", fontweight='bold')
        ax.set_title(f"Impact per Life-Cycle Phase\n{title or result.project_id}", pad=20, loc='left')

        span = max(abs(v) for v in values) or 1.0
        for bar, value in zip(bars, values):
            if value == 0:
                continue
            offset = span * 0.01 if value > 0 else -span * 0.04
            ax.text(bar.get_x() + bar.get_width() / 2., value + offset, f'{value:.0f}',
                    ha='center', va='bottom', fontsize=9, fontweight='bold', color=self.colors['text'])

        plt.tight_layout()
        filepath = self.get_save_path("phase_breakdown.png")
        plt.savefig(filepath, dpi=300, bbox_inches='tight')
        plt.close(fig)
        print(f"   [Plot] Saved phase breakdown to: {filepath}")
        return filepath

    def plot_element_breakdown(self, result: CalculationResult, title: str = "") -> Optional[str]:
        """Stacked horizontal bars: A-C impact per element, split by phase."""
        if not result.succeeded or not result.elements:
            logger.warning(f"No element chart for project {result.project_id}")
            return None

        burden_phases = [p for p in REPORTED_PHASES if p != "D"]
        data = pd.DataFrame(
            [[e.phases.get(p) for p in burden_phases] for e in result.elements],
            index=[e.element_name for e in result.elements],
            columns=burden_phases,
        )

        fig, ax = plt.subplots(figsize=(12, 1.2 * len(data) + 3), dpi=150)
        cmap = plt.get_cmap('tab10')
        left = [0.0] * len(data)
        for i, phase in enumerate(burden_phases):
            ax.barh(data.index, data[phase], left=left, color=cmap(i), edgecolor='white',
                    linewidth=1.0, label=f"{phase} {PHASE_LABELS[phase]}")
            left = [a + b for a, b in zip(left, data[phase])]

        ax.set_xlabel("Impact A-C (kgCO2e)", fontweight='bold')
        ax.set_title(f"Impact per Element\n{title or result.project_id}", loc='left', pad=15)
        ax.grid(True, axis='x', linestyle=':', alpha=0.5)
        ax.grid(False, axis='y')
        ax.legend(bbox_to_anchor=(1.02, 1), loc='upper left', frameon=False, fontsize=9)

        plt.tight_layout()
        filepath = self.get_save_path("element_breakdown.png")
        plt.savefig(filepath, dpi=300, bbox_inches='tight')
        plt.close(fig)
        print(f"   [Plot] Saved element breakdown to: {filepath}")
        return filepath

    # ============================================================================
    # BATCH PLOTS
    # ============================================================================

    def plot_batch_summary(self, df: pd.DataFrame) -> Optional[str]:
        """MPG per project against its limit, from a format_result_frame() table."""
        ok = df[df["Status"] == "succeeded"] if not df.empty else df
        if ok.empty:
            logger.warning("No successful calculations to plot.")
            return None

        fig, ax = plt.subplots(figsize=(12, 7), dpi=150)
        colors = [self.colors['credit'] if c else self.colors['limit'] for c in ok["Compliant"]]
        ax.bar(ok["Project ID"], ok["MPG (kgCO2e/m²/yr)"], color=colors, alpha=0.8, width=0.5)
        ax.scatter(ok["Project ID"], ok["Limit (kgCO2e/m²/yr)"], marker='_', s=800,
                   color=self.colors['text'], label='Limit', zorder=3)

        ax.set_ylabel("MPG (kgCO2e/m²/yr)", fontweight='bold')
        ax.set_title("MPG per Project", loc='left', pad=15)
        ax.legend(frameon=False)
        plt.xticks(rotation=45, ha='right')

        plt.tight_layout()
        filepath = self.get_save_path("batch_mpg.png")
        plt.savefig(filepath, dpi=300, bbox_inches='tight')
        plt.close(fig)
        print(f"   [Plot] Saved batch summary to: {filepath}")
        return filepath
