"""CLI entry point for monthly bill generation.

Previews a tenant's bills for a month, or commits them with --commit.

Usage:
    python -m src.cli.generate_bills 1 2025-02
    python -m src.cli.generate_bills 1 2025-02 --commit
    python -m src.cli.generate_bills 1 2025-02 --commit --regenerate

Exit Codes:
    0 - Success: Preview printed or bills committed
    1 - Failure: Error encountered; database state unchanged

Logging:
    INFO level logs to both stdout and the configured LOG_FILE
"""

import argparse
import asyncio
import logging
import sys

from src.services import get_session_factory
from src.services.bills_service import BillGenerationService, GenerationPreview
from src.services.config import load_config
from src.services.errors import BillingError
from src.services.logging import setup_server_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Preview or generate monthly bills")
    parser.add_argument("tenant_id", type=int, help="Tenant to bill")
    parser.add_argument("billing_month", help="Bill month as YYYY-MM")
    parser.add_argument("--commit", action="store_true", help="Persist bills (default: preview)")
    parser.add_argument(
        "--regenerate",
        action="store_true",
        help="Replace existing regular bills for the month (with --commit)",
    )
    parser.add_argument("--actor-id", type=int, default=None, help="Administrator id for the audit log")
    return parser


def format_preview(preview: GenerationPreview) -> str:
    """Render a preview as a plain-text table."""
    period = preview.period
    lines = [
        f"Billing month {period.label}: period {period.period_from} to {period.period_to}, "
        f"statement {period.statement_date}, due {period.due_date}",
        f"{'Unit':<10} {'Owner':<28} {'Current':>12} {'Prev bal':>12} {'Penalty':>10} {'Total':>12}",
    ]
    for bill in preview.bills:
        lines.append(
            f"{bill.unit_number:<10} {bill.owner_name[:28]:<28} {bill.current_charges:>12} "
            f"{bill.previous_balance:>12} {bill.penalty_amount:>10} {bill.total_amount:>12}"
        )
        for warning in bill.warnings:
            lines.append(f"{'':<10} ! {warning}")

    summary = preview.summary
    lines.append(
        f"{summary.total_units} unit(s), {summary.units_with_warnings} with warnings, "
        f"total {summary.total_amount}"
    )

    warnings = preview.validation_warnings
    if warnings.no_payments_recorded:
        lines.append(f"Warning: no payments recorded for {warnings.previous_month_label}")
    if warnings.previous_month_unpaid_count:
        lines.append(
            f"Note: {warnings.previous_month_unpaid_count} bill(s) from "
            f"{warnings.previous_month_label} are still unpaid"
        )
    if warnings.no_adjustments:
        lines.append("Note: no SP assessments or discounts for this month")
    return "\n".join(lines)


async def main(argv: list[str] | None = None) -> int:
    """
    Main entry point for bill generation CLI.

    Returns:
        Exit code: 0 for success, 1 for failure
    """
    args = build_parser().parse_args(argv)

    try:
        config = load_config()
        setup_server_logging(config.log_file)
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 1

    try:
        async with get_session_factory(config.database_url)() as session:
            service = BillGenerationService(session, config)
            if args.commit:
                result = await service.commit(
                    args.tenant_id,
                    args.billing_month,
                    regenerate=args.regenerate,
                    actor_id=args.actor_id,
                )
                print(result.message)
                for bill in result.bills:
                    print(f"  {bill.bill_number}  unit {bill.unit_id}  {bill.total_amount}")
            else:
                preview = await service.preview(args.tenant_id, args.billing_month)
                print(format_preview(preview))
        return 0

    except KeyboardInterrupt:
        logger.warning("Bill generation interrupted by user")
        return 1
    except BillingError as e:
        logger.error("Bill generation failed: %s", e.message)
        return 1
    except Exception as e:
        logger.error("Bill generation failed: %s", e, exc_info=True)
        return 1


if __name__ == "__main__":
    exit_code = asyncio.run(main())
    sys.exit(exit_code)
