"""
Label reconciliation CLI.

Turns a label extraction into a canonical chemical record. The extraction is
either read from a JSON file or produced from a label photo through the
vision API. Optionally links a cached SDS and stores the record.

Usage:
    python scripts/reconcile_label.py --extraction scan.json --output canonical.json
    python scripts/reconcile_label.py --image label.jpg --database data/hazcom.db --save
"""

import argparse
import base64
import json
import logging
import mimetypes
import sys
from pathlib import Path

from hazcom.catalog import load_catalog
from hazcom.database import ChemicalRepository, DatabaseManager
from hazcom.extraction import ExtractionAPIError, ExtractionParseError, LabelExtractionClient
from hazcom.matching import LabelReconciler
from hazcom.sds import apply_sds_lookup, lookup_sds
from hazcom.utils import get_config

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler(sys.stderr)]
)
logger = logging.getLogger(__name__)


def load_extraction(args) -> dict:
    """Read the extraction from a JSON file or run the vision API on an image."""
    if args.extraction:
        with open(args.extraction, 'r', encoding='utf-8') as f:
            return json.load(f)

    image_path = Path(args.image)
    mime_type = args.mime_type or mimetypes.guess_type(image_path.name)[0] or 'image/jpeg'
    image_base64 = base64.b64encode(image_path.read_bytes()).decode('ascii')

    with LabelExtractionClient(config=get_config(args.config)) as client:
        return client.extract(image_base64, mime_type)


def main():
    """Main entry point for label reconciliation."""
    parser = argparse.ArgumentParser(
        description="Reconcile a chemical label extraction with the reference catalog",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Reconcile a saved extraction
  python scripts/reconcile_label.py --extraction scan.json

  # Read a label photo, link a cached SDS and store the chemical
  python scripts/reconcile_label.py --image label.jpg --database data/hazcom.db --save --location "Paint Booth"
        """
    )

    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument('--extraction', '-e', help='Extraction JSON file')
    source.add_argument('--image', '-i', help='Label photo to send to the vision API')
    parser.add_argument('--mime-type', help='Image media type (guessed from the file name if omitted)')
    parser.add_argument('--catalog', help='Alternative reference catalog YAML')
    parser.add_argument('--config', help='Path to hazcom_config.yaml')
    parser.add_argument('--output', '-o', help='Write the canonical record to this JSON file')
    parser.add_argument('--database', '-d', help='Database for SDS lookup / storage (default: data/hazcom.db)')
    parser.add_argument('--save', action='store_true', help='Store the canonical record as a scanned chemical')
    parser.add_argument('--location', default='', help='Storage location for the stored chemical')
    parser.add_argument('--added-by', default='', help='Actor recorded on the stored chemical')

    args = parser.parse_args()

    try:
        extraction = load_extraction(args)
    except (ExtractionAPIError, ExtractionParseError) as e:
        logger.error(f"Label extraction failed: {e}. Retry with a clearer photo or enter the chemical manually.")
        sys.exit(1)
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Could not read input: {e}")
        sys.exit(1)

    config = get_config(args.config)
    catalog = load_catalog(Path(args.catalog)) if args.catalog else None
    result = LabelReconciler(catalog=catalog, config=config).reconcile(extraction)
    canonical = result.canonical

    for note in result.notes:
        logger.warning(note)
    if result.requires_review:
        logger.warning(f"Record needs review (confidence={result.confidence}, uncertain={result.fields_uncertain})")

    if args.database or args.save:
        db = DatabaseManager(db_path=args.database)
        db.create_all_tables()

        product_name = canonical.get('product_name') or ''
        manufacturer = canonical.get('manufacturer') or ''
        if product_name and manufacturer:
            with db.session_scope() as session:
                hit = lookup_sds(session, product_name, manufacturer)
            apply_sds_lookup(canonical, hit, min_confidence=config.get_sds_param('min_cache_confidence'))

        if args.save:
            canonical['location'] = args.location
            try:
                stored = ChemicalRepository(db).add_from_scan(canonical, added_by=args.added_by)
            except ValueError as e:
                logger.error(f"Cannot store chemical: {e}")
                sys.exit(1)
            logger.info(f"Stored chemical id={stored['id']}")
        db.close()

    output = json.dumps(result.to_dict(), indent=2, default=str)
    if args.output:
        Path(args.output).write_text(output, encoding='utf-8')
        logger.info(f"Canonical record written to: {args.output}")
    else:
        print(output)


if __name__ == "__main__":
    main()
