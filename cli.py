#!/usr/bin/env python3
"""
Event Forecast Engine - CLI Tool

A command-line interface for forecasting event models and comparing scenarios.

Usage:
    python cli.py forecast <model.json>            # Period-by-period forecast
    python cli.py scenario <model.json> [deltas]   # Baseline vs what-if scenario
    python cli.py compare <model.json> [...]       # Aggregate a set of scenarios
    python cli.py export <model.json> <format>     # Export forecast (json, csv)
"""

import argparse
import json
import logging
import sys
from dataclasses import asdict
from datetime import datetime
from typing import Dict, List, Optional

from models.financial_model import FinancialModel, ForecastError, PeriodRecord
from models.projection import (
    PeriodProjector,
    forecast_frame,
    generate_forecast,
    summarize_forecast,
)
from models.records import model_from_record, model_to_record
from analysis.scenarios import (
    ScenarioParameterDeltas,
    apply_scenario_deltas,
    compare_forecasts,
)
from analysis.aggregation import aggregate_scenarios

logger = logging.getLogger('cli')


class Colors:
    """ANSI color codes for terminal output."""
    HEADER = '\033[95m'
    BLUE = '\033[94m'
    CYAN = '\033[96m'
    GREEN = '\033[92m'
    YELLOW = '\033[93m'
    RED = '\033[91m'
    ENDC = '\033[0m'
    BOLD = '\033[1m'


def colorize(text: str, color: str) -> str:
    """Apply color to text."""
    return f"{color}{text}{Colors.ENDC}"


def print_header(text: str):
    """Print a formatted header."""
    print()
    print(colorize("=" * 60, Colors.CYAN))
    print(colorize(f"  {text}", Colors.BOLD + Colors.CYAN))
    print(colorize("=" * 60, Colors.CYAN))
    print()


def print_subheader(text: str):
    """Print a formatted subheader."""
    print()
    print(colorize(f"--- {text} ---", Colors.YELLOW))
    print()


def print_metric(name: str, value: str, delta: Optional[str] = None):
    """Print a formatted metric."""
    if delta:
        delta_color = Colors.GREEN if not delta.startswith('-') else Colors.RED
        print(f"  {colorize(name + ':', Colors.BOLD)} {value}  ({colorize(delta, delta_color)})")
    else:
        print(f"  {colorize(name + ':', Colors.BOLD)} {value}")


def print_error(text: str):
    print(colorize(f"Error: {text}", Colors.RED), file=sys.stderr)


def load_models(path: str) -> List[FinancialModel]:
    """Read one model record, or a list of them, from a JSON file."""
    with open(path) as f:
        data = json.load(f)
    records = data if isinstance(data, list) else [data]
    return [model_from_record(record) for record in records]


def parse_channel_deltas(values: Optional[List[str]]) -> Dict[str, float]:
    """Parse repeated ID=PCT options."""
    deltas = {}
    for value in values or []:
        channel_id, sep, pct = value.partition('=')
        if not sep:
            raise ValueError(f"Channel delta must look like ID=PCT, got '{value}'")
        deltas[channel_id.strip()] = float(pct)
    return deltas


def print_forecast_table(records: List[PeriodRecord]):
    show_attendance = any(r.attendance is not None for r in records)
    header = f"  {'Period':<10} {'Revenue':>12} {'Cost':>12} {'Profit':>12} {'Cum. Profit':>13}"
    if show_attendance:
        header += f" {'Attendance':>11}"
    print(header)
    print("  " + "-" * (len(header) - 2))
    for r in records:
        profit_str = f"${r.profit:>11,}"
        if r.profit < 0:
            profit_str = colorize(profit_str, Colors.RED)
        line = (f"  {r.label:<10} ${r.revenue:>11,} ${r.cost:>11,} {profit_str} "
                f"${r.cumulative_profit:>12,}")
        if show_attendance:
            line += f" {r.attendance:>11,}"
        print(line)


def print_summary(records: List[PeriodRecord]):
    summary = summarize_forecast(records)
    print_metric("Total Revenue", f"${summary.total_revenue:,}")
    print_metric("Total Costs", f"${summary.total_cost:,}")
    print_metric("Total Profit", f"${summary.total_profit:,}")
    print_metric("Profit Margin", f"{summary.profit_margin:.1f}%")
    print_metric("Break-even", summary.break_even_label)
    print_metric("Avg Revenue/Period", f"${summary.average_revenue:,.2f}")
    print_metric("Avg Profit/Period", f"${summary.average_profit:,.2f}")


def cmd_forecast(model: FinancialModel, breakdown: bool = False):
    """Display a model's forecast."""
    print_header(f"Forecast: {model.name}")

    records = generate_forecast(model)
    if not records:
        print(colorize("  No forecast could be generated for this model.", Colors.RED))
        return

    print_subheader("Summary")
    print_summary(records)

    print_subheader(f"{model.duration_unit.label}ly Forecast")
    print_forecast_table(records)

    if breakdown:
        projector = PeriodProjector(model)
        print_subheader("Breakdown")
        for period in range(1, model.duration + 1):
            projection = projector.project(period)
            print(f"  {colorize(model.period_label(period), Colors.BOLD)}")
            for name, amount in projection.revenue_breakdown.items():
                if amount:
                    print(f"    + {name:<28} ${amount:>12,.2f}")
            for name, amount in projection.cost_breakdown.items():
                if amount:
                    print(f"    - {name:<28} ${amount:>12,.2f}")

    print()


def cmd_scenario(model: FinancialModel, deltas: ScenarioParameterDeltas, name: Optional[str]):
    """Compare a baseline with a scenario built from deltas."""
    scenario = apply_scenario_deltas(model, deltas, name=name or f"{model.name} (scenario)")
    print_header(f"Scenario: {scenario.name}")

    print_subheader("Deltas")
    print_metric("Marketing Spend", f"{deltas.marketing_spend_percent:+.1f}%")
    for channel_id, pct in deltas.marketing_spend_by_channel.items():
        print_metric(f"  Channel {channel_id}", f"{pct:+.1f}%")
    print_metric("Pricing", f"{deltas.pricing_percent:+.1f}%")
    print_metric("Attendance Growth", f"{deltas.attendance_growth_percent:+.1f} pts")
    print_metric("COGS & Staff Cost", f"{deltas.cogs_percent:+.1f}%")

    baseline_records = generate_forecast(model)
    scenario_records = generate_forecast(scenario)
    baseline = summarize_forecast(baseline_records)
    result = summarize_forecast(scenario_records)
    comparison = compare_forecasts(baseline, result)

    print_subheader("Scenario vs Baseline")
    print_metric("Revenue", f"${result.total_revenue:,}",
                 f"{comparison.revenue_delta:+,.0f} / {comparison.revenue_delta_percent:+.1f}%")
    print_metric("Costs", f"${result.total_cost:,}",
                 f"{comparison.costs_delta:+,.0f} / {comparison.costs_delta_percent:+.1f}%")
    print_metric("Profit", f"${result.total_profit:,}",
                 f"{comparison.profit_delta:+,.0f} / {comparison.profit_delta_percent:+.1f}%")
    print_metric("Profit Margin", f"{result.profit_margin:.1f}%",
                 f"{comparison.margin_delta:+.1f} pts")
    print_metric("Break-even", result.break_even_label,
                 f"{comparison.break_even_delta:+d} periods")

    print_subheader("Scenario Forecast")
    print_forecast_table(scenario_records)
    print()


def cmd_compare(models: List[FinancialModel]):
    """Aggregate a set of scenario models."""
    print_header("Scenario Comparison")

    analysis = aggregate_scenarios(models)

    print(f"  {'Scenario':<28} {'Label':<13} {'Revenue':>12} {'Costs':>12} {'Profit':>12} {'Margin':>8}")
    print("  " + "-" * 90)
    for index, s in enumerate(analysis.scenarios):
        marker = '*' if index == analysis.primary_index else ' '
        print(f" {marker}{s.name[:28]:<28} {s.label:<13} ${s.revenue:>11,.0f} "
              f"${s.costs:>11,.0f} ${s.profit:>11,.0f} {s.profit_margin:>7.1f}%")

    print_subheader("Across Scenarios")
    print(f"  {'Metric':<15} {'Min':>12} {'Max':>12} {'Average':>12} {'Median':>12} {'Primary':>12}")
    print("  " + "-" * 80)
    for metric, values in analysis.aggregate_metrics.items():
        print(f"  {metric:<15} {values.min:>12,.2f} {values.max:>12,.2f} "
              f"{values.average:>12,.2f} {values.median:>12,.2f} {values.primary:>12,.2f}")

    print_subheader("Variance")
    variance_color = {'Low': Colors.GREEN, 'Medium': Colors.YELLOW}.get(analysis.variance, Colors.RED)
    print_metric("Variance", colorize(analysis.variance, variance_color),
                 f"{analysis.variance_percent:.2f}% revenue spread")
    print_metric("Key Differences", ', '.join(analysis.key_differences) or 'None')

    if analysis.risk_factors:
        print_subheader("Risk Factors")
        for risk in analysis.risk_factors:
            print(f"  {colorize('!', Colors.RED)} {risk}")
    print()


def cmd_export(model: FinancialModel, format: str, output_path: Optional[str]) -> bool:
    """Export a model's forecast."""
    print_header("Exporting Forecast")

    records = generate_forecast(model)

    if not output_path:
        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        output_path = f"forecast_{timestamp}.{format}"

    if format == 'json':
        report = {
            'generated_at': datetime.now().isoformat(),
            'model': model_to_record(model),
            'summary': asdict(summarize_forecast(records)),
            'forecast': [r.as_dict() for r in records],
        }
        with open(output_path, 'w') as f:
            json.dump(report, f, indent=2, default=str)
    elif format == 'csv':
        forecast_frame(records).to_csv(output_path, index=False)
    else:
        print_error(f"Unknown format '{format}'")
        return False

    print(colorize(f"\nForecast exported to: {output_path}", Colors.GREEN))
    print()
    return True


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Event Forecast Engine - Forecast and Scenario Tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python cli.py forecast model.json
  python cli.py forecast model.json --breakdown
  python cli.py scenario model.json --pricing 10 --attendance 2
  python cli.py scenario model.json --marketing 20 --channel social=-50
  python cli.py compare conservative.json realistic.json optimistic.json
  python cli.py export model.json csv --output forecast.csv

Model files hold one model record or a list of records (JSON).
        """
    )

    parser.add_argument('command', choices=[
        'forecast', 'scenario', 'compare', 'export'
    ], help='Command to run')

    parser.add_argument('args', nargs='*', help='Command arguments')

    # Scenario deltas
    parser.add_argument('--marketing', type=float, default=0.0,
                        help='Marketing spend change in percent')
    parser.add_argument('--channel', action='append', metavar='ID=PCT',
                        help='Per-channel marketing change in percent (repeatable)')
    parser.add_argument('--pricing', type=float, default=0.0,
                        help='Ticket, F&B and merchandise price change in percent')
    parser.add_argument('--attendance', type=float, default=0.0,
                        help='Attendance growth change in percentage points')
    parser.add_argument('--cogs', type=float, default=0.0,
                        help='COGS and staff cost change in percent')
    parser.add_argument('--name', type=str,
                        help='Scenario name')

    # Command-specific options
    parser.add_argument('--breakdown', action='store_true',
                        help='Show per-period revenue and cost breakdown')
    parser.add_argument('--output', '-o', type=str,
                        help='Output file path')
    parser.add_argument('--log-level', default='WARNING',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Logging level (default: WARNING)')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level),
                        format='%(asctime)s %(name)s %(levelname)s %(message)s')

    if not args.args:
        print_error("Please specify a model file")
        return 2

    paths = args.args if args.command == 'compare' else args.args[:1]
    try:
        models = []
        for path in paths:
            models.extend(load_models(path))
    except (OSError, json.JSONDecodeError) as e:
        print_error(f"Could not read model: {e}")
        return 1
    except (ForecastError, ValueError) as e:
        logger.debug("Model load failed", exc_info=True)
        print_error(str(e))
        return 1

    if not models:
        print_error("Model file contains no models")
        return 1
    model = models[0]

    try:
        if args.command == 'compare':
            cmd_compare(models)
        elif args.command == 'forecast':
            cmd_forecast(model, args.breakdown)
        elif args.command == 'scenario':
            deltas = ScenarioParameterDeltas(
                marketing_spend_percent=args.marketing,
                marketing_spend_by_channel=parse_channel_deltas(args.channel),
                pricing_percent=args.pricing,
                attendance_growth_percent=args.attendance,
                cogs_percent=args.cogs,
            )
            cmd_scenario(model, deltas, args.name)
        elif args.command == 'export':
            if len(args.args) < 2:
                print_error("Please specify export format (json, csv)")
                return 2
            if not cmd_export(model, args.args[1], args.output):
                return 2
    except OSError as e:
        print_error(f"Could not write output: {e}")
        return 1
    except (ForecastError, ValueError) as e:
        logger.debug("Command failed", exc_info=True)
        print_error(str(e))
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
