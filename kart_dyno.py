#!/usr/bin/env python3
"""
Engine Torque and Power Estimation from Kart Telemetry
Infers torque/power curves versus RPM from logged engine RPM and ground speed,
a virtual dyno for sessions recorded with a lap timer / data logger.
"""

import argparse
import logging
import sys
from concurrent.futures import ThreadPoolExecutor

from analyzer import PowerAnalyzer
from session_params import SessionParams
from telemetry import GroupingMode

__version__ = "1.0.0"


def build_parser() -> argparse.ArgumentParser:
    defaults = SessionParams()
    parser = argparse.ArgumentParser(
        description='Estimate engine torque and power curves from RPM + speed telemetry',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Overall curve from one session with default kart parameters
  kart-dyno session1.csv

  # Compare sessions, heavier driver, self-calibrated drag
  kart-dyno s1.csv s2.csv --mode by_session --mass 180 --coastdown-fit

  # One curve per lap of laps 3-5, exported to CSV
  kart-dyno s1.csv --mode by_lap --laps 3 4 5 --csv curves.csv --no-plot
        """
    )

    # Required arguments
    parser.add_argument('csv_files', nargs='+', help='Path(s) to CSV log file(s)')

    # Physics inputs
    parser.add_argument('--mass', type=float, default=defaults.mass_kg,
                        help=f'Kart + driver mass in kg (default: {defaults.mass_kg})')
    parser.add_argument('--temp', type=float, default=defaults.temp_c,
                        help=f'Ambient temperature in °C (default: {defaults.temp_c})')
    parser.add_argument('--pressure', type=float, default=defaults.pressure_hpa,
                        help=f'Ambient pressure in hPa (default: {defaults.pressure_hpa})')
    parser.add_argument('--eta', type=float, default=defaults.eta,
                        help=f'Driveline efficiency 0-1 (default: {defaults.eta})')
    parser.add_argument('--cda', type=float, default=defaults.cda,
                        help=f'Drag area CdA in m² (default: {defaults.cda})')
    parser.add_argument('--crr', type=float, default=defaults.crr,
                        help=f'Rolling resistance coefficient (default: {defaults.crr})')
    parser.add_argument('--coastdown-fit', action='store_true',
                        help='Estimate CdA/Crr from deceleration phases, falling back to --cda/--crr')

    # Curve construction
    parser.add_argument('--rpm-bin', type=float, default=defaults.rpm_bin,
                        help=f'RPM bin width (default: {defaults.rpm_bin:.0f})')
    parser.add_argument('--percentile', type=float, default=defaults.percentile,
                        help=f'Torque percentile per bin (default: {defaults.percentile})')
    parser.add_argument('--max-slip', type=float, default=defaults.max_slip,
                        help=f'Maximum |slip ratio| for a usable sample (default: {defaults.max_slip})')
    parser.add_argument('--min-speed', type=float, default=defaults.min_speed_mps,
                        help=f'Minimum speed in m/s (default: {defaults.min_speed_mps})')
    parser.add_argument('--smooth-bins', type=int, default=defaults.smooth_window_bins,
                        help=f'Torque smoothing window in bins (default: {defaults.smooth_window_bins})')
    parser.add_argument('--accel-smooth', type=int, default=defaults.accel_smooth_win,
                        help=f'Speed smoothing window in samples (default: {defaults.accel_smooth_win})')
    parser.add_argument('--accel-clip', type=float, default=None,
                        help='Clamp acceleration to ±value m/s² (default: off)')

    # Grouping and selection
    parser.add_argument('--mode', choices=[m.value for m in GroupingMode], default=GroupingMode.OVERALL.value,
                        help='Compute one curve overall, per session or per lap (default: overall)')
    parser.add_argument('--sessions', nargs='*', default=None, help='Only use these sessions (file stems)')
    parser.add_argument('--laps', nargs='*', type=int, default=None, help='Only use these lap numbers')
    parser.add_argument('--workers', type=int, default=1,
                        help='Threads used to compute groupings in parallel (default: 1)')

    # Output options
    parser.add_argument('--out', help='Output file for plot (optional)')
    parser.add_argument('--title', help='Custom title for the plot')
    parser.add_argument('--csv', dest='csv_out', help='Export curves as Session,RPM,Torque_Nm,Power_kW')
    parser.add_argument('--preview', help='Save a raw RPM/speed preview plot to this file')
    parser.add_argument('--no-plot', action='store_true', help='Skip generating plot')
    parser.add_argument('--debug', action='store_true', help='Enable debug logging of pipeline stages')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    return parser


def params_from_args(args: argparse.Namespace) -> SessionParams:
    return SessionParams(
        mass_kg=args.mass,
        temp_c=args.temp,
        pressure_hpa=args.pressure,
        eta=args.eta,
        cda=args.cda,
        crr=args.crr,
        use_coastdown_fit=args.coastdown_fit,
        rpm_bin=args.rpm_bin,
        percentile=args.percentile,
        max_slip=args.max_slip,
        min_speed_mps=args.min_speed,
        smooth_window_bins=args.smooth_bins,
        accel_smooth_win=args.accel_smooth,
        accel_clip=args.accel_clip,
    )


def main(argv=None):
    """Main entry point"""
    args = build_parser().parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.debug else logging.WARNING,
                        format='%(levelname)s %(name)s: %(message)s')

    try:
        analyzer = PowerAnalyzer(params_from_args(args))
        analyzer.load_data(args.csv_files, sessions=args.sessions, laps=args.laps)

        if args.workers > 1:
            with ThreadPoolExecutor(max_workers=args.workers) as executor:
                analyzer.compute(GroupingMode(args.mode), executor)
        else:
            analyzer.compute(GroupingMode(args.mode))

        print(analyzer.generate_report())

        if args.preview:
            analyzer.plot_raw_preview(args.preview)

        if analyzer.successful_results:
            if args.csv_out:
                analyzer.export_csv(args.csv_out)
            if not args.no_plot:
                analyzer.plot_curves(args.out, args.title)
        else:
            print("No grouping produced a curve.")
            print(f"Try lowering --min-speed (currently {args.min_speed} m/s)")
            print(f"or raising --max-slip (currently {args.max_slip})")

    except Exception as e:
        print(f"Error: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
