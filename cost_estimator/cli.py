"""
Command-line entry point.

Runs one estimation and prints a summary table. The request comes from a
JSON file (--request) or from individual flags; flags override file values.

Usage:
    cost-estimator --country US --university MIT --program "Computer Science" \
        --level graduate --lifestyle standard --accommodation shared \
        --location-preference cityCentre --output report.json
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Optional

from rich.console import Console
from rich.table import Table

from cost_estimator.coordinator import (
    EstimationCoordinator,
    EstimationResult,
    EstimationTimeoutError,
)
from cost_estimator.models.config import ExecutionStrategy, SystemParams
from cost_estimator.models.costs import CostEstimateReport, ValidationResult
from cost_estimator.models.user_input import (
    AccommodationType,
    Country,
    Diet,
    Lifestyle,
    LocationPreference,
    StudyLevel,
    Transportation,
)
from cost_estimator.utils.llm_helpers import ClaudeOracle
from cost_estimator.utils.logger import configure_logging
from cost_estimator.utils.progress_tracker import ProgressTracker
from cost_estimator.utils.rate_limiter import ModelRateLimiter

console = Console()

EXIT_OK = 0
EXIT_INVALID = 1
EXIT_TIMEOUT = 2

_REQUEST_FLAGS = (
    "country",
    "university",
    "program",
    "level",
    "lifestyle",
    "accommodation",
    "location_preference",
    "city",
    "diet",
    "transportation",
    "program_duration",
)


def _choices(enum_cls: Any) -> list[str]:
    return [member.value for member in enum_cls]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cost-estimator",
        description="Estimate the total cost of studying abroad.",
    )
    parser.add_argument("--request", type=Path, help="JSON file with the request")
    parser.add_argument("--country", choices=_choices(Country))
    parser.add_argument("--university")
    parser.add_argument("--program")
    parser.add_argument("--level", choices=_choices(StudyLevel))
    parser.add_argument("--lifestyle", choices=_choices(Lifestyle))
    parser.add_argument("--accommodation", choices=_choices(AccommodationType))
    parser.add_argument(
        "--location-preference",
        dest="location_preference",
        choices=_choices(LocationPreference),
    )
    parser.add_argument("--city")
    parser.add_argument("--diet", choices=_choices(Diet))
    parser.add_argument("--transportation", choices=_choices(Transportation))
    parser.add_argument(
        "--program-duration", dest="program_duration", type=float, help="Years"
    )
    parser.add_argument("--config", type=Path, help="Path to system_params.json")
    parser.add_argument(
        "--strategy", choices=_choices(ExecutionStrategy), help="Resolver scheduling"
    )
    parser.add_argument("--timeout", type=float, help="Run timeout in seconds")
    parser.add_argument("--output", type=Path, help="Write the JSON report here")
    parser.add_argument("--log-file", default=None, help="Also log to this file")
    return parser


def load_request(args: argparse.Namespace) -> dict[str, Any]:
    request: dict[str, Any] = {}
    if args.request:
        with open(args.request, "r", encoding="utf-8") as f:
            request.update(json.load(f))
    for flag in _REQUEST_FLAGS:
        value = getattr(args, flag)
        if value is not None:
            request[flag] = value
    return request


def render_report(report: CostEstimateReport) -> None:
    summary = report.summary
    currency = summary.currency.value

    table = Table(title=f"{report.user_input.university}: {report.user_input.program}")
    table.add_column("Cost")
    table.add_column("Amount", justify="right")
    table.add_column("Range", justify="right")
    for label, item in (
        ("Annual", summary.total_annual_cost),
        ("Monthly", summary.total_monthly_cost),
        (f"Total ({summary.total_cost.duration:g} years)", summary.total_cost),
    ):
        table.add_row(
            label,
            f"{item.amount:,} {currency}",
            f"{item.range.min:,.0f} - {item.range.max:,.0f}",
        )
    console.print(table)

    console.print(
        f"Tuition confidence: {report.tuition.confidence:.2f}"
        f"{' (estimate)' if report.tuition.is_estimate else ''}"
    )
    console.print("[bold]Recommendations[/bold]")
    for recommendation in report.recommendations:
        console.print(f"  - {recommendation}")
    console.print("[bold]Sources[/bold]")
    for source in report.sources:
        console.print(f"  - {source}")


def render_validation(result: ValidationResult) -> None:
    console.print("[bold red]Invalid request[/bold red]")
    for error in result.errors:
        console.print(f"  - {error}")


async def run_estimation(
    request: dict[str, Any], params: SystemParams, timeout: Optional[float]
) -> EstimationResult:
    oracle = ClaudeOracle(
        model=params.oracle.model,
        search_max_turns=params.oracle.search_max_turns,
        rate_limiter=ModelRateLimiter(
            default_rate=params.rate_limiting.oracle_calls_per_minute, time_period=60.0
        ),
    )
    coordinator = EstimationCoordinator(oracle, params)
    oracle.correlation_id = coordinator.correlation_id

    tracker = ProgressTracker(console)
    tracker.start(f"Estimating {request.get('university', 'costs')}")
    try:
        result = await coordinator.run_with_timeout(
            request, on_progress=tracker.on_progress, timeout=timeout
        )
    except EstimationTimeoutError as e:
        tracker.abort(str(e))
        raise
    if isinstance(result, ValidationResult):
        tracker.abort("invalid request")
    else:
        tracker.complete()
    return result


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    params = SystemParams.load(args.config)
    if args.strategy:
        params = params.model_copy(
            update={
                "execution": params.execution.model_copy(
                    update={"strategy": ExecutionStrategy(args.strategy)}
                )
            }
        )
    configure_logging(log_file=args.log_file, log_level=params.log_level)

    request = load_request(args)
    try:
        result = asyncio.run(run_estimation(request, params, args.timeout))
    except EstimationTimeoutError as e:
        console.print(f"[bold red]{e}[/bold red]")
        return EXIT_TIMEOUT

    if isinstance(result, ValidationResult):
        render_validation(result)
        return EXIT_INVALID

    render_report(result)
    if args.output:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_text(
            json.dumps(result.to_json_dict(), indent=2, ensure_ascii=False),
            encoding="utf-8",
        )
        console.print(f"Report written to {args.output}")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
