"""
Compliance report CLI.

Loads the inventory and roster from the database, computes the compliance
score and writes:
- a console summary (score, pillar breakdown, top improvements)
- action_items.xlsx: one row per deficiency (optional)
- the written HazCom program as Markdown (optional)

Usage:
    python scripts/compliance_report.py --database data/hazcom.db
    python scripts/compliance_report.py --database data/hazcom.db --action-items reports/action_items.xlsx \
        --program reports/hazcom_program.md --site-name "Rodriguez Auto Body" --coordinator "Mike Rodriguez"
"""

import argparse
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List

import pandas as pd
from openpyxl.styles import Alignment, Font, PatternFill

from hazcom.compliance import ComplianceResult, calculate_compliance_score, is_fully_documented
from hazcom.database import (
    ChemicalRepository,
    DatabaseManager,
    EmployeeRepository,
    SiteSnapshot,
)
from hazcom.importing import import_inventory
from hazcom.program import SiteInfo, generate_written_program
from hazcom.utils import get_config

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler(sys.stderr)]
)
logger = logging.getLogger(__name__)


def collect_action_items(chemicals: List[Dict[str, Any]], score: ComplianceResult) -> List[Dict[str, Any]]:
    """Flatten every deficiency into one row per item."""
    rows = []
    for chemical in chemicals:
        name = chemical['product_name']
        if chemical['sds_status'] == 'expired':
            rows.append({'area': 'SDS Coverage', 'item': name, 'action': 'Replace expired SDS'})
        elif chemical['sds_status'] != 'current':
            rows.append({'area': 'SDS Coverage', 'item': name, 'action': 'Find SDS'})
        if not chemical['labeled']:
            rows.append({'area': 'Container Labels', 'item': name, 'action': 'Print GHS label'})
        if not is_fully_documented(chemical):
            rows.append({'area': 'Chemical Documentation', 'item': name, 'action': 'Complete safety data'})

    for employee_name, info in score.training:
        if not info.is_trained:
            rows.append({'area': 'Employee Training', 'item': employee_name, 'action': info.status_label})
    return rows


def format_summary(score: ComplianceResult) -> str:
    """Generate the console summary."""
    lines = [
        "=" * 60,
        f"COMPLIANCE SCORE: {score.overall}%  ({score.status})",
        "=" * 60,
    ]
    for pillar in score.breakdown.values():
        lines.append(
            f"  {pillar.label:<25} {pillar.pct:>3}%  ({pillar.current}/{pillar.total}, weight {pillar.weight:g})"
        )
    lines.append(f"\nAction items: {score.action_item_count}")
    if score.improvements:
        lines.append("Top improvements:")
        for improvement in score.improvements:
            lines.append(f"  +{improvement.points:<3} {improvement.text}")
    return "\n".join(lines)


def write_action_items(rows: List[Dict[str, Any]], output_path: str, sheet_name: str = "Action Items"):
    """
    Write action items to a formatted Excel sheet.

    Args:
        rows: Action item dictionaries
        output_path: Path to output Excel file
        sheet_name: Name of worksheet
    """
    df = pd.DataFrame(rows, columns=['area', 'item', 'action'])

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with pd.ExcelWriter(output_path, engine='openpyxl') as writer:
        df.to_excel(writer, sheet_name=sheet_name, index=False)
        ws = writer.sheets[sheet_name]

        header_fill = PatternFill(start_color="366092", end_color="366092", fill_type="solid")
        header_font = Font(color="FFFFFF", bold=True)
        for cell in ws[1]:
            cell.fill = header_fill
            cell.font = header_font
            cell.alignment = Alignment(horizontal='center', vertical='center')

        for column in ws.columns:
            max_length = max(len(str(cell.value or '')) for cell in column)
            ws.column_dimensions[column[0].column_letter].width = min(max_length + 2, 60)

        red_fill = PatternFill(start_color="FFE5E5", end_color="FFE5E5", fill_type="solid")
        for row_idx, row in enumerate(df.itertuples(), start=2):
            if row.area == 'SDS Coverage':
                for col_idx in range(1, len(df.columns) + 1):
                    ws.cell(row=row_idx, column=col_idx).fill = red_fill

    logger.info(f"Action items written to: {output_path}")


def main():
    """Main entry point for the compliance report."""
    parser = argparse.ArgumentParser(
        description="HazCom compliance score and written program",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Score only
  python scripts/compliance_report.py --database data/hazcom.db

  # Import an inventory sheet first, then write everything
  python scripts/compliance_report.py --import-inventory inventory.xlsx --action-items action_items.xlsx \\
      --program program.md --site-name "Rodriguez Auto Body" --coordinator "Mike Rodriguez"
        """
    )

    parser.add_argument('--database', '-d', help='Path to database file (default: data/hazcom.db)')
    parser.add_argument('--config', help='Path to hazcom_config.yaml')
    parser.add_argument('--import-inventory', help='Inventory spreadsheet (Excel/CSV) to import before scoring')
    parser.add_argument('--action-items', help='Write one row per deficiency to this Excel file')
    parser.add_argument('--program', help='Write the written HazCom program (Markdown) to this file')
    parser.add_argument('--json', help='Write the score as JSON to this file')
    parser.add_argument('--site-name', default='Our Shop', help='Company name for the written program')
    parser.add_argument('--coordinator', default='', help='HazCom program coordinator')
    parser.add_argument('--now', help='Reference date (ISO format) for training status; defaults to today')

    args = parser.parse_args()

    try:
        now = datetime.fromisoformat(args.now) if args.now else None
    except ValueError:
        logger.error(f"--now must be an ISO date, got '{args.now}'")
        sys.exit(1)

    config = get_config(args.config)
    errors = config.validate_config()
    if errors:
        for error in errors:
            logger.error(f"Invalid configuration: {error}")
        sys.exit(1)

    try:
        db = DatabaseManager(db_path=args.database)
        db.create_all_tables()
        chemicals = ChemicalRepository(db)
        employees = EmployeeRepository(db)

        if args.import_inventory:
            summary = import_inventory(args.import_inventory, chemicals)
            logger.info(f"Import summary: {summary.to_dict()}")

        for drift in employees.check_drift(now=now):
            logger.info(
                f"Using derived status '{drift.derived_status}' for {drift.employee_name} "
                f"(stored '{drift.stored_status}')"
            )

        snapshot = SiteSnapshot(chemicals, employees).load(now=now)
        score = calculate_compliance_score(snapshot['chemicals'], snapshot['employees'], config=config, now=now)
        print(format_summary(score))

        if args.action_items:
            write_action_items(collect_action_items(snapshot['chemicals'], score), args.action_items)

        if args.json:
            Path(args.json).write_text(json.dumps(score.to_dict(), indent=2), encoding='utf-8')
            logger.info(f"Score JSON written to: {args.json}")

        if args.program:
            site = SiteInfo(name=args.site_name, coordinator=args.coordinator or 'Not assigned')
            document = generate_written_program(
                site, snapshot['chemicals'], snapshot['employees'], score=score, now=now
            )
            program_path = Path(args.program)
            program_path.parent.mkdir(parents=True, exist_ok=True)
            program_path.write_text(document, encoding='utf-8')
            logger.info(f"Written program saved to: {program_path}")

        db.close()

    except Exception as e:
        logger.error(f"Compliance report failed: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
