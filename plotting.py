"""
Plotting and visualization of torque/power curves
"""

from typing import Optional, Sequence, Tuple

import numpy as np

from constants import AnalysisConstants
from curve_result import CurveResult
from telemetry import TimeSeries

# Lazy imports for heavy dependencies
def _import_matplotlib(headless: bool = False):
    import matplotlib
    if headless:
        matplotlib.use('Agg')
    import matplotlib.pyplot as plt
    return plt


class Plotter:
    """Handles plotting of estimated curves and raw telemetry"""

    def plot_curves(self, results: Sequence[Tuple[str, CurveResult]],
                    save_path: Optional[str] = None, title: Optional[str] = None) -> None:
        """
        Dyno-style torque and power curves, one pair per grouping

        Args:
            results: (name, result) pairs; failed results are skipped
            save_path: Optional path to save the plot instead of showing it
            title: Optional custom title for the plot
        """
        results = [(name, result) for name, result in results if result.ok]
        if not results:
            raise ValueError("No curves to plot.")

        plt = _import_matplotlib(headless=save_path is not None)
        fig, ax1 = plt.subplots(figsize=(12, 7))

        # Power on a second y-axis
        ax2 = ax1.twinx()

        colors = plt.cm.tab10(np.linspace(0, 1, max(len(results), 2)))

        for i, (name, result) in enumerate(results):
            color = colors[i % len(colors)]
            torque_rpm, torque_max = result.peak_torque()
            power_rpm, power_max = result.peak_power()

            # Torque as solid lines, power as dashed lines
            ax1.plot(result.rpm_curve, result.torque_curve, color=color, linewidth=2,
                     linestyle='-', label=f'{name} - Torque')
            ax2.plot(result.rpm_curve, result.power_curve, color=color, linewidth=2,
                     linestyle='--', label=f'{name} - Power')

            ax1.plot([torque_rpm], [torque_max], marker='D', markersize=8, color=color)
            ax2.plot([power_rpm], [power_max], marker='D', markersize=8, color=color)

            ax1.annotate(f'Peak torque\n{torque_max:.1f} N·m @ {torque_rpm:.0f} RPM',
                         xy=(torque_rpm, torque_max), xytext=(20, -30), textcoords='offset points',
                         fontsize=9, arrowprops=dict(arrowstyle='->', color=color),
                         bbox=dict(boxstyle='round,pad=0.3', facecolor='white', alpha=0.8))
            ax2.annotate(f'Peak power\n{power_max:.1f} kW @ {power_rpm:.0f} RPM',
                         xy=(power_rpm, power_max), xytext=(20, 30), textcoords='offset points',
                         fontsize=9, arrowprops=dict(arrowstyle='->', color=color),
                         bbox=dict(boxstyle='round,pad=0.3', facecolor='white', alpha=0.8))

        ax1.set_xlabel('Engine Speed (RPM)', fontsize=12, fontweight='bold')
        ax1.set_ylabel('Torque (N·m)', fontsize=12, fontweight='bold', color='red')
        ax2.set_ylabel('Power (kW)', fontsize=12, fontweight='bold', color='blue')
        ax1.tick_params(axis='y', labelcolor='red')
        ax2.tick_params(axis='y', labelcolor='blue')
        ax1.grid(True, alpha=0.3)

        # Combine legends
        lines1, labels1 = ax1.get_legend_handles_labels()
        lines2, labels2 = ax2.get_legend_handles_labels()
        ax1.legend(lines1 + lines2, labels1 + labels2, loc='best')

        ax1.set_title(title if title else 'Estimated Torque and Power Curves', fontsize=14, fontweight='bold')

        self._finish(plt, fig, save_path)

    def plot_raw_preview(self, ts: TimeSeries, save_path: Optional[str] = None,
                         max_points: int = 2000) -> None:
        """RPM and speed against time for the first max_points samples"""
        if len(ts) == 0:
            raise ValueError("No telemetry to plot.")

        plt = _import_matplotlib(headless=save_path is not None)
        fig, ax1 = plt.subplots(figsize=(12, 5))
        ax2 = ax1.twinx()

        n = min(len(ts), max_points)
        ax1.plot(ts.t[:n], ts.rpm[:n], color='red', linewidth=1, label='RPM')
        ax2.plot(ts.t[:n], ts.speed_mps[:n] * AnalysisConstants.KMH_PER_MS, color='blue',
                 linewidth=1, label='Speed (km/h)')

        ax1.set_xlabel('Time (s)', fontsize=11)
        ax1.set_ylabel('RPM', fontsize=11, color='red')
        ax2.set_ylabel('Speed (km/h)', fontsize=11, color='blue')
        ax1.grid(True, alpha=0.3)
        ax1.set_title('Raw Data Preview', fontsize=12)

        lines1, labels1 = ax1.get_legend_handles_labels()
        lines2, labels2 = ax2.get_legend_handles_labels()
        ax1.legend(lines1 + lines2, labels1 + labels2, loc='upper left')

        self._finish(plt, fig, save_path)

    @staticmethod
    def _finish(plt, fig, save_path: Optional[str]) -> None:
        fig.tight_layout()
        if save_path:
            fig.savefig(save_path, dpi=150, bbox_inches='tight')
            print(f"Plot saved to {save_path}")
            plt.close(fig)
        else:
            plt.show()
